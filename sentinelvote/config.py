# sentinelvote/config.py

import os
from datetime import timedelta

MIN_TOTAL_USERS = 3
MAX_TOTAL_USERS = 1_000_000


def clamp_user_count(total_users):
    """Out-of-range counts fall back to the nearest bound."""
    return max(MIN_TOTAL_USERS, min(int(total_users), MAX_TOTAL_USERS))


def _env_int(name, default):
    try:
        return int(os.environ.get(name, default))
    except ValueError:
        return default


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY', 'change-me-in-production')
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY', 'change-me-in-production-jwt')
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=_env_int('JWT_ACCESS_MINUTES', 30))
    JWT_TOKEN_LOCATION = ['headers']

    # Database file, or ':memory:'. Recreated on every start.
    SENTINEL_DATABASE = os.environ.get('SENTINEL_DATABASE', os.path.join('public', 'sqlite3.db'))
    SENTINEL_PROFILE = os.environ.get('SENTINEL_PROFILE', 'production')
    SENTINEL_TOTAL_USERS = clamp_user_count(_env_int('SENTINEL_TOTAL_USERS', MIN_TOTAL_USERS))
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Ledger gateway
    FABRIC_BASE_URL = os.environ.get('FABRIC_BASE_URL', 'http://localhost:8801')
    FABRIC_CHANNEL = os.environ.get('FABRIC_CHANNEL', 'vote-channel')
    FABRIC_CONTRACT = os.environ.get('FABRIC_CONTRACT', 'SentinelVote')
    FABRIC_ADMIN_ID = os.environ.get('FABRIC_ADMIN_ID', 'admin')
    FABRIC_ADMIN_SECRET = os.environ.get('FABRIC_ADMIN_SECRET', 'adminpw')
    LEDGER_TIMEOUT_SECONDS = _env_int('LEDGER_TIMEOUT_SECONDS', 120)

    # Seed passwords
    DEFAULT_PASSWORD = os.environ.get('DEFAULT_PASSWORD', 'password')
    NON_DEFAULT_PASSWORD = os.environ.get('NON_DEFAULT_PASSWORD', 'Password1!')
    ARGON2_TIME_COST = _env_int('ARGON2_TIME_COST', 3)
    ARGON2_MEMORY_COST = _env_int('ARGON2_MEMORY_COST', 65536)

    KEY_EXPORT_DIR = os.environ.get('KEY_EXPORT_DIR')
    AUDIT_LOG_DIR = os.environ.get('AUDIT_LOG_DIR', 'logs')
    DEV_ROUTES_ENABLED = _env_bool('DEV_ROUTES_ENABLED')
    RATELIMIT_DEFAULT = os.environ.get('RATELIMIT_DEFAULT', '10000/hour')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret'
    JWT_SECRET_KEY = 'test-jwt-secret-with-enough-length-for-hs256'
    SENTINEL_DATABASE = ':memory:'
    SENTINEL_PROFILE = 'production'
    SENTINEL_TOTAL_USERS = 5
    ARGON2_TIME_COST = 1
    ARGON2_MEMORY_COST = 8192
    RATELIMIT_ENABLED = False
    DEV_ROUTES_ENABLED = True
    LEDGER_TIMEOUT_SECONDS = 5
