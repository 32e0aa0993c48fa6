# sentinelvote/database/queries.py

# Queries shared by the election services. Every function takes an open
# SQLAlchemy Session; callers own the session and its transaction scope.

import enum
import logging

from sqlalchemy import exists, select, update
from sqlalchemy.exc import IntegrityError

from sentinelvote.database.models import ElectionEnd, FoldedPublicKeys, User

logger = logging.getLogger(__name__)

SINGLETON_ID = 1


class InsertOutcome(enum.Enum):
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"


# -- singleton tables ---------------------------------------------------------

def singleton_exists(session, model):
    return bool(session.scalar(select(exists().where(model.singleton == SINGLETON_ID))))


def insert_singleton(session, model, **values):
    """Insert the single row of ``model`` and commit.

    A uniqueness violation is reported as ``InsertOutcome.ALREADY_EXISTS``
    once the existing row is confirmed; any other integrity failure is re-raised.
    """
    session.add(model(singleton=SINGLETON_ID, **values))
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        if singleton_exists(session, model):
            return InsertOutcome.ALREADY_EXISTS
        raise
    return InsertOutcome.CREATED


def exists_is_end_of_election(session):
    return singleton_exists(session, ElectionEnd)


def insert_is_end_of_election(session):
    return insert_singleton(session, ElectionEnd, is_end_of_election=True)


def exists_folded_public_keys(session):
    return singleton_exists(session, FoldedPublicKeys)


def select_folded_public_keys(session):
    return session.scalar(
        select(FoldedPublicKeys.folded_public_keys).where(FoldedPublicKeys.singleton == SINGLETON_ID)
    )


def insert_folded_public_keys(session, folded_public_keys):
    return insert_singleton(session, FoldedPublicKeys, folded_public_keys=folded_public_keys)


# -- users --------------------------------------------------------------------

def get_public_keys(session):
    """Registered voters' public keys in registration (rowid) order."""
    return list(session.scalars(
        select(User.public_key)
        .where(User.is_central_authority.is_(False), User.public_key != '')
        .order_by(User.id)
    ))


def get_user_by_email(session, email):
    return session.scalar(select(User).where(User.email == email))


def get_all_users(session):
    return list(session.scalars(select(User).order_by(User.id)))


def get_voters(session):
    # Voters with keys first, as the authority dashboard lists them.
    return list(session.scalars(
        select(User)
        .where(User.is_central_authority.is_(False))
        .order_by((User.public_key != '').desc(), User.id)
    ))


def update_keys_by_email(session, email, public_key, private_key=None):
    """Set a voter's keys if none are registered yet. Returns rows updated."""
    values = {'public_key': public_key}
    if private_key is not None:
        values['private_key'] = private_key
    result = session.execute(
        update(User)
        .where(User.email == email, User.public_key == '')
        .values(**values)
    )
    session.commit()
    return result.rowcount


def update_has_voted_by_email(session, email):
    """Flip has_voted from false to true. Returns rows updated (0 if already set)."""
    result = session.execute(
        update(User)
        .where(User.email == email, User.has_voted.is_(False))
        .values(has_voted=True)
    )
    session.commit()
    return result.rowcount


def update_password_by_email(session, email, password_hash):
    result = session.execute(
        update(User)
        .where(User.email == email)
        .values(password=password_hash)
    )
    session.commit()
    return result.rowcount
