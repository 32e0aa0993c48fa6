# sentinelvote/election/votes.py

import logging

from sentinelvote.errors import ElectionClosedError, LedgerError
from sentinelvote.security.input_validator import InputValidator

logger = logging.getLogger(__name__)


class VoteService:
    """Forwards signed votes to the ledger while the election is open.

    The payload is passed on exactly as received so the chaincode can verify
    the embedded ring signature; nothing here parses or checks the signature.
    Delivery is at most once: a ledger failure is reported, not queued.
    """

    def __init__(self, ledger, state_controller, audit_logger=None, validator=None):
        self.ledger = ledger
        self.state_controller = state_controller
        self.audit_logger = audit_logger
        self.validator = validator or InputValidator()

    def submit_vote(self, raw_payload):
        payload = self.validator.validate_vote_payload(raw_payload)
        if self.state_controller.is_closed():
            raise ElectionClosedError()

        try:
            receipt = self.ledger.submit_vote(payload)
        except LedgerError as e:
            logger.error("Vote submission failed: %s", e)
            self._audit('vote_submission_failed', {'error': str(e)})
            raise
        logger.info("Vote stored on the ledger under key %s", receipt.key)
        self._audit('vote_submitted', {'key': receipt.key})
        return receipt

    def _audit(self, event_type, data):
        if self.audit_logger is not None:
            self.audit_logger.record(event_type, data)
