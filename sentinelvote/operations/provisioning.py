# sentinelvote/operations/provisioning.py
"""Per-run database bring-up: pool sizing, fresh schema, seeded users.

Provisioning is destructive by design of the election lifecycle: each run
starts a fresh election, so an existing database file (and its WAL and
shared-memory side files) is deleted before the schema is created. A failure
at any step removes whatever was written and raises ``ProvisioningError``.
"""

import enum
import logging
import math
import os
import random
from itertools import islice

from sqlalchemy import event
from sqlalchemy.pool import StaticPool

from sentinelvote import db
from sentinelvote.config import clamp_user_count
from sentinelvote.database import seed_data
from sentinelvote.database.models import User
from sentinelvote.errors import ProvisioningError
from sentinelvote.identifiers import uuid7_str

logger = logging.getLogger(__name__)

MIN_POOL_SIZE = 4
MAX_POOL_SIZE = 1000
POOL_HEADROOM = 0.75
POOL_TIMEOUT_SECONDS = 120
INSERT_BATCH_SIZE = 5000
MEMORY_DATABASE = ':memory:'
SIDE_FILE_SUFFIXES = ('', '-wal', '-shm')


class Profile(enum.Enum):
    PRODUCTION = 'production'            # keys registered by voters; nothing folded at start
    SIMULATION = 'simulation'            # every voter gets keys; set folded at start
    SIMULATION_FULL = 'simulation-full'  # as SIMULATION, and the set is anchored on the ledger

    @classmethod
    def parse(cls, value, default=None):
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            if default is None:
                raise
            return default

    @property
    def stores_private_keys(self):
        return self is not Profile.PRODUCTION


def pool_size_for(total_users):
    """clamp(ceil(0.75 * U), 4, 1000), U clamped to the supported range first."""
    size = math.ceil(clamp_user_count(total_users) * POOL_HEADROOM)
    return max(MIN_POOL_SIZE, min(size, MAX_POOL_SIZE))


def is_memory_database(database):
    return database in (MEMORY_DATABASE, 'memory', 'file::memory:?mode=memory')


def database_uri(database):
    if is_memory_database(database):
        return 'sqlite://'
    return f'sqlite:///{os.path.abspath(database)}'


def engine_options(database, pool_size):
    if is_memory_database(database):
        # One shared connection, otherwise every connection sees its own empty database.
        return {'poolclass': StaticPool, 'connect_args': {'check_same_thread': False}}
    return {
        'pool_size': pool_size,
        'max_overflow': 0,
        'pool_timeout': POOL_TIMEOUT_SECONDS,
        'connect_args': {'check_same_thread': False, 'timeout': 30},
    }


def configure_sqlite(engine):
    @event.listens_for(engine, 'connect')
    def _set_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute('PRAGMA foreign_keys=ON')
        cursor.execute('PRAGMA journal_mode=WAL')
        cursor.close()


def _batched(iterable, size):
    iterator = iter(iterable)
    while True:
        batch = list(islice(iterator, size))
        if not batch:
            return
        yield batch


class ProvisioningService:
    def __init__(self, engine, database, signer, password_service, anonymity_set,
                 default_password, non_default_password, audit_logger=None, key_export_dir=None):
        self.engine = engine
        self.database = database
        self.signer = signer
        self.password_service = password_service
        self.anonymity_set = anonymity_set
        self.default_password = default_password
        self.non_default_password = non_default_password
        self.audit_logger = audit_logger
        self.key_export_dir = key_export_dir

    def provision(self, profile, total_users):
        profile = Profile.parse(profile)
        total_users = clamp_user_count(total_users)
        logger.info("Provisioning %s election for %d users", profile.value, total_users)
        try:
            self._reset_storage()
            self._create_schema()
            self._seed_users(profile, total_users)
            if profile is not Profile.PRODUCTION:
                self.anonymity_set.fold(anchor=profile is Profile.SIMULATION_FULL)
            if self.key_export_dir:
                self._export_fixed_keys(profile)
        except Exception as e:
            logger.error("Provisioning failed: %s", e)
            self._discard()
            raise ProvisioningError(f"Provisioning failed: {e}") from e

        if self.audit_logger is not None:
            self.audit_logger.record('election_provisioned', {'profile': profile.value, 'total_users': total_users})
        logger.info("Provisioned %s election with %d users", profile.value, total_users)
        return profile

    # -- steps ---------------------------------------------------------------

    def _database_files(self):
        if is_memory_database(self.database):
            return []
        return [os.path.abspath(self.database) + suffix for suffix in SIDE_FILE_SUFFIXES]

    def _reset_storage(self):
        self.engine.dispose()
        for path in self._database_files():
            if os.path.exists(path):
                logger.info("Found existing database file at %s, removing", path)
                os.remove(path)
        if not is_memory_database(self.database):
            os.makedirs(os.path.dirname(os.path.abspath(self.database)), exist_ok=True)

    def _create_schema(self):
        logger.info("Creating schema")
        with self.engine.begin() as conn:
            db.metadata.create_all(conn)

    def _seed_users(self, profile, total_users):
        # One shared hash for the bulk of users: Argon2id per row is far too slow at scale.
        default_hash = self.password_service.hash_password(self.default_password, check_strength=False)
        fixed_rows = [self._fixed_row(account, profile, default_hash) for account in seed_data.FIXED_ACCOUNTS]
        synthetic_count = total_users - len(fixed_rows)

        with self.engine.begin() as conn:
            conn.execute(User.__table__.insert(), fixed_rows)
            rows = self._synthetic_rows(synthetic_count, default_hash, issue_keys=profile is not Profile.PRODUCTION)
            for batch in _batched(rows, INSERT_BATCH_SIZE):
                conn.execute(User.__table__.insert(), batch)
        logger.info("Inserted %d fixed and %d synthetic users", len(fixed_rows), synthetic_count)

    def _fixed_row(self, account, profile, default_hash):
        if account['non_default_password']:
            password = self.password_service.hash_password(self.non_default_password, check_strength=False)
        else:
            password = default_hash
        row = self._user_row(
            email=account['email'],
            first_name=account['first_name'],
            last_name=account['last_name'],
            constituency=account['constituency'],
            password=password,
            is_central_authority=account['is_central_authority'],
            is_default_password=not account['non_default_password'],
        )
        if account['issue_keys']:
            self._issue_keys(row, profile.stores_private_keys)
        return row

    def _synthetic_rows(self, count, password_hash, issue_keys):
        rng = random.Random(count)
        for n in range(1, count + 1):
            row = self._user_row(
                email=seed_data.synthetic_email(n),
                first_name=rng.choice(seed_data.FIRST_NAMES),
                last_name=rng.choice(seed_data.LAST_NAMES),
                constituency=rng.choice(seed_data.CONSTITUENCIES),
                password=password_hash,
                is_central_authority=False,
                is_default_password=True,
            )
            if issue_keys:
                self._issue_keys(row, store_private_key=True)
            yield row

    @staticmethod
    def _user_row(**values):
        row = {
            'uuid': uuid7_str(),
            'public_key': '',
            'private_key': None,
            'has_voted': False,
        }
        row.update(values)
        return row

    def _issue_keys(self, row, store_private_key):
        private_key, row['public_key'] = self.signer.generate_key_pair()
        # Production never keeps private keys server-side.
        row['private_key'] = private_key if store_private_key else None

    def _export_fixed_keys(self, profile):
        os.makedirs(self.key_export_dir, exist_ok=True)
        with self.engine.connect() as conn:
            users = conn.execute(
                User.__table__.select()
                .where(User.is_central_authority.is_(False))
                .order_by(User.id)
                .limit(2)
            ).mappings().all()
        for index, user in enumerate(users, start=1):
            self._write_pem(f"publicKeyUser{index}.pem", user['public_key'])
            if profile.stores_private_keys and user['private_key']:
                self._write_pem(f"privateKeyUser{index}.pem", user['private_key'])

    def _write_pem(self, filename, content):
        path = os.path.join(self.key_export_dir, filename)
        with open(path, 'w') as f:
            f.write(content)
        logger.info("Wrote %s", path)

    def _discard(self):
        # Leave nothing usable behind after a failed run.
        self.engine.dispose()
        for path in self._database_files():
            try:
                os.remove(path)
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.error("Could not remove %s: %s", path, e)
