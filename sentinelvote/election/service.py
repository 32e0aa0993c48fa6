# sentinelvote/election/service.py

import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sentinelvote.database import queries
from sentinelvote.election.anonymity_set import AnonymitySetBuilder
from sentinelvote.election.state import ElectionStateController
from sentinelvote.election.votes import VoteService
from sentinelvote.errors import (
    AuthenticationError, AuthorizationError, ConflictError, NotFoundError, StorageError, ValidationError,
)
from sentinelvote.operations.provisioning import Profile, ProvisioningService
from sentinelvote.security.input_validator import InputValidator

logger = logging.getLogger(__name__)


class Election:
    """One deployment's election services, all sharing the engine passed in.

    The engine (and its connection pool) is owned here and handed to each
    service explicitly, so separate instances never share storage.
    """

    def __init__(self, engine, database, signer, ledger, password_service, audit_logger=None,
                 profile=Profile.PRODUCTION, default_password='password',
                 non_default_password='Password1!', key_export_dir=None):
        self.engine = engine
        self.signer = signer
        self.ledger = ledger
        self.password_service = password_service
        self.audit_logger = audit_logger
        self.profile = Profile.parse(profile)
        self.validator = InputValidator()

        self.anonymity_set = AnonymitySetBuilder(engine, signer, ledger, audit_logger)
        self.state = ElectionStateController(engine, audit_logger)
        self.votes = VoteService(ledger, self.state, audit_logger, self.validator)
        self.provisioning = ProvisioningService(
            engine, database, signer, password_service, self.anonymity_set,
            default_password=default_password,
            non_default_password=non_default_password,
            audit_logger=audit_logger,
            key_export_dir=key_export_dir,
        )

    @classmethod
    def from_config(cls, engine, config, signer, ledger, password_service, audit_logger=None):
        return cls(
            engine,
            database=config['SENTINEL_DATABASE'],
            signer=signer,
            ledger=ledger,
            password_service=password_service,
            audit_logger=audit_logger,
            profile=Profile.parse(config['SENTINEL_PROFILE'], default=Profile.PRODUCTION),
            default_password=config['DEFAULT_PASSWORD'],
            non_default_password=config['NON_DEFAULT_PASSWORD'],
            key_export_dir=config.get('KEY_EXPORT_DIR'),
        )

    # -- lifecycle operations --------------------------------------------------

    def provision_election(self, profile, user_count):
        profile = Profile(self.validator.validate_profile(getattr(profile, 'value', profile)))
        user_count = self.validator.validate_user_count(user_count)
        self.profile = self.provisioning.provision(profile, user_count)

    def fold_anonymity_set(self):
        return self.anonymity_set.fold()

    def get_folded_public_keys(self):
        return self.anonymity_set.get_folded_public_keys()

    def folded_public_keys_exist(self):
        return self.anonymity_set.exists()

    def submit_vote(self, raw_payload):
        return self.votes.submit_vote(raw_payload)

    def close_election(self, actor=None):
        return self.state.close(actor=actor)

    def is_election_closed(self):
        return self.state.is_closed()

    # -- voter records ----------------------------------------------------------

    def authenticate(self, email, password, remote_addr=None):
        """Check credentials and return the public view of the account."""
        email = self.validator.sanitize_string(email) if isinstance(email, str) else ''
        if not isinstance(password, str):
            password = ''
        with self._session() as session:
            user = queries.get_user_by_email(session, email) if self.validator.validate_email(email) else None
            if user is None or not self.password_service.verify_password(password, user.password):
                self._audit('failed_login', {'email': email, 'ip': remote_addr})
                raise AuthenticationError()
            if self.password_service.needs_rehash(user.password):
                queries.update_password_by_email(
                    session, email, self.password_service.hash_password(password, check_strength=False))
                logger.info("Rehashed password for %s", email)
            profile = user.to_public_dict()
        self._audit('successful_login', {'ip': remote_addr}, actor=email)
        return profile

    def get_user(self, email):
        self.validator.require_email(email)
        with self._session() as session:
            user = queries.get_user_by_email(session, email)
            if user is None:
                raise NotFoundError("User not found")
            return user.to_public_dict()

    def get_voters(self):
        with self._session() as session:
            return [user.to_public_dict() for user in queries.get_voters(session)]

    def issue_key_pair(self):
        return self.signer.generate_key_pair()

    def sign_message(self, private_key, message):
        """Sign ``message`` against the stored folded set."""
        self.validator.validate_private_key_pem(private_key)
        if not isinstance(message, str) or not message:
            raise ValidationError("Missing message parameter")
        return self.signer.sign(private_key, message, self.get_folded_public_keys())

    def get_private_key(self, email):
        # Only simulation profiles keep private keys server-side.
        if not self.profile.stores_private_keys:
            raise AuthorizationError("Private keys are not kept in production")
        self.validator.require_email(email)
        with self._session() as session:
            user = queries.get_user_by_email(session, email)
            if user is None:
                raise NotFoundError("User not found")
            if not user.private_key:
                raise NotFoundError("No private key stored for this user")
            return user.private_key

    def store_user_keys(self, email, public_key, private_key=None):
        self.validator.require_email(email)
        self.validator.validate_public_key_pem(public_key)
        if private_key and self.profile.stores_private_keys:
            self.validator.validate_private_key_pem(private_key)
        else:
            # Production keeps no private keys server-side.
            private_key = None
        with self._session() as session:
            if queries.get_user_by_email(session, email) is None:
                raise NotFoundError("User not found")
            if not queries.update_keys_by_email(session, email, public_key, private_key):
                raise ConflictError("Public key is already registered")
        logger.info("Stored public key for %s", email)

    def mark_has_voted(self, email):
        """Returns True if the flag changed, False if it was already set."""
        self.validator.require_email(email)
        with self._session() as session:
            if queries.get_user_by_email(session, email) is None:
                raise NotFoundError("User not found")
            return bool(queries.update_has_voted_by_email(session, email))

    # -- table dumps for development --------------------------------------------

    def dump_users(self):
        include_private_key = self.profile.stores_private_keys
        with self._session() as session:
            return [user.to_dump_dict(include_private_key) for user in queries.get_all_users(session)]

    def dump_folded_public_keys(self):
        with self._session() as session:
            return queries.select_folded_public_keys(session) or ''

    def dump_tables(self):
        return {
            'users': self.dump_users(),
            'foldedPublicKeys': self.dump_folded_public_keys(),
            'isEndOfElection': self.is_election_closed(),
        }

    def _audit(self, event_type, data, actor=None):
        if self.audit_logger is not None:
            self.audit_logger.record(event_type, data, actor=actor)

    @contextmanager
    def _session(self):
        with Session(self.engine) as session:
            try:
                yield session
            except SQLAlchemyError as e:
                raise StorageError(f"Database operation failed: {e}") from e
