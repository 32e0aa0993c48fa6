# sentinelvote/election/anonymity_set.py
"""Folding registered public keys into the election's anonymity set.

The folded set is written once. Signatures made against it are only linkable
while it stays unchanged, so a second fold is refused rather than replacing
the stored set. The database row is authoritative; the ledger anchor is an
audit record written after the row exists, and its failure is tolerated.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sentinelvote.database import queries
from sentinelvote.encryption.ring_keys import DEFAULT_ENCODING, DEFAULT_FOLDING_MODE, DEFAULT_HASH
from sentinelvote.errors import AlreadyFoldedError, LedgerError, NotFoldedError, StorageError

logger = logging.getLogger(__name__)


class AnonymitySetBuilder:
    def __init__(self, engine, signer, ledger, audit_logger=None,
                 hash_algorithm=DEFAULT_HASH, encoding=DEFAULT_ENCODING, mode=DEFAULT_FOLDING_MODE):
        self.engine = engine
        self.signer = signer
        self.ledger = ledger
        self.audit_logger = audit_logger
        self.hash_algorithm = hash_algorithm
        self.encoding = encoding
        self.mode = mode

    def get_public_keys(self):
        try:
            with Session(self.engine) as session:
                return queries.get_public_keys(session)
        except SQLAlchemyError as e:
            raise StorageError(f"Reading public keys failed: {e}") from e

    def exists(self):
        try:
            with Session(self.engine) as session:
                return queries.exists_folded_public_keys(session)
        except SQLAlchemyError as e:
            raise StorageError(f"Checking folded public keys failed: {e}") from e

    def get_folded_public_keys(self):
        try:
            with Session(self.engine) as session:
                folded = queries.select_folded_public_keys(session)
        except SQLAlchemyError as e:
            raise StorageError(f"Reading folded public keys failed: {e}") from e
        if folded is None:
            raise NotFoldedError()
        return folded

    def fold(self, anchor=True):
        """Fold, persist and (optionally) anchor the anonymity set. Returns the folded blob."""
        if self.exists():
            raise AlreadyFoldedError()

        public_keys = self.get_public_keys()
        logger.info("Folding %d public keys", len(public_keys))
        # CryptoPrimitiveError propagates with the primitive's status.
        folded = self.signer.fold_public_keys(
            public_keys, hash_algorithm=self.hash_algorithm, encoding=self.encoding, mode=self.mode)

        try:
            with Session(self.engine) as session:
                outcome = queries.insert_folded_public_keys(session, folded)
        except SQLAlchemyError as e:
            raise StorageError(f"Storing folded public keys failed: {e}") from e
        if outcome is queries.InsertOutcome.ALREADY_EXISTS:
            # Lost a race with a concurrent fold; the stored set stands.
            raise AlreadyFoldedError()

        self._audit('anonymity_set_folded', {'key_count': len(public_keys)})
        if anchor:
            self._anchor(folded)
        return folded

    def _anchor(self, folded):
        try:
            status = self.ledger.anchor_folded_keys(folded)
        except LedgerError as e:
            logger.warning("Unable to insert folded public keys into the ledger: %s", e)
            self._audit('anonymity_set_anchor_failed', {'error': str(e)})
            return False
        logger.info("Inserted folded public keys into the ledger: %s", status)
        return True

    def _audit(self, event_type, data):
        if self.audit_logger is not None:
            self.audit_logger.record(event_type, data)
