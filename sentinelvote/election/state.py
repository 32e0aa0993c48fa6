# sentinelvote/election/state.py

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sentinelvote.database import queries
from sentinelvote.errors import StorageError

logger = logging.getLogger(__name__)


class ElectionStateController:
    """Open -> closed, once. Closing an already closed election is not an error."""

    def __init__(self, engine, audit_logger=None):
        self.engine = engine
        self.audit_logger = audit_logger

    def is_closed(self):
        try:
            with Session(self.engine) as session:
                return queries.exists_is_end_of_election(session)
        except SQLAlchemyError as e:
            raise StorageError(f"Reading election state failed: {e}") from e

    def close(self, actor=None):
        """Returns True when the election had already been closed."""
        try:
            with Session(self.engine) as session:
                outcome = queries.insert_is_end_of_election(session)
        except SQLAlchemyError as e:
            raise StorageError(f"Closing the election failed: {e}") from e

        already_closed = outcome is queries.InsertOutcome.ALREADY_EXISTS
        if already_closed:
            logger.info("Election was already closed")
            self._audit('election_close_repeated', actor)
        else:
            logger.info("Election closed")
            self._audit('election_closed', actor)
        return already_closed

    def _audit(self, event_type, actor):
        if self.audit_logger is not None:
            self.audit_logger.record(event_type, actor=actor)
