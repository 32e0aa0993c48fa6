# sentinelvote/errors.py

# Error taxonomy shared by the election services and the HTTP layer.
# Each class carries the HTTP status the app error handler responds with.


class SentinelVoteError(Exception):
    status_code = 500

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__doc__ or self.__class__.__name__)
        self.message = str(self.args[0])

    def to_dict(self):
        return {"error": self.message}


# Validation

class ValidationError(SentinelVoteError, ValueError):
    """Invalid request data."""
    status_code = 400


class AuthenticationError(SentinelVoteError):
    """Invalid email or password."""
    status_code = 401


class AuthorizationError(SentinelVoteError):
    """Insufficient privileges."""
    status_code = 403


class NotFoundError(SentinelVoteError):
    """Resource not found."""
    status_code = 404


class NotFoldedError(NotFoundError):
    """Public keys have not been folded yet."""


# State conflicts

class ConflictError(SentinelVoteError):
    """Conflicting state."""
    status_code = 409


class AlreadyFoldedError(ConflictError):
    """Public keys have already been folded."""


class ElectionClosedError(ConflictError):
    """The election has ended."""


# Dependencies

class StorageError(SentinelVoteError):
    """Database operation failed."""
    status_code = 500


class LedgerError(SentinelVoteError):
    """Ledger gateway request failed."""
    status_code = 502


class ProvisioningError(SentinelVoteError):
    """Provisioning the election database failed."""
    status_code = 500


class CryptoPrimitiveError(SentinelVoteError):
    """Raised with the status code reported by the ring key service."""
    status_code = 500

    def __init__(self, status, message=None):
        self.status = status
        super().__init__(message or f"crypto primitive failed: {status}")
