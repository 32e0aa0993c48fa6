# sentinelvote/__init__.py

import logging

from flask import Flask, jsonify
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_sqlalchemy import SQLAlchemy
from werkzeug.middleware.proxy_fix import ProxyFix

# Extensions are created unbound and attached to each app in create_app().
db = SQLAlchemy()  # Database ORM
jwt = JWTManager()
limiter = Limiter(key_func=get_remote_address)

# Ensure model modules are imported so SQLAlchemy metadata is populated.
from sentinelvote.database import models  # noqa: E402,F401
from sentinelvote.audit.audit_logger import AuditLogger  # noqa: E402
from sentinelvote.config import Config  # noqa: E402
from sentinelvote.election.service import Election  # noqa: E402
from sentinelvote.encryption.password_hashing import PasswordHashingService  # noqa: E402
from sentinelvote.encryption.ring_keys import EcRingKeyService  # noqa: E402
from sentinelvote.errors import SentinelVoteError  # noqa: E402
from sentinelvote.ledger.fabric_client import FabricLedgerClient  # noqa: E402
from sentinelvote.operations.provisioning import (  # noqa: E402
    configure_sqlite, database_uri, engine_options, pool_size_for,
)
from sentinelvote.routes import register_routes  # noqa: E402
from sentinelvote.security.token_manager import TokenManager  # noqa: E402


@jwt.expired_token_loader
def expired_token_callback(jwt_header, jwt_payload):
    return jsonify({"error": "Token has expired"}), 401


@jwt.unauthorized_loader
def missing_token_callback(reason):
    return jsonify({"error": reason}), 401


@jwt.invalid_token_loader
def invalid_token_callback(reason):
    return jsonify({"error": reason}), 401


def create_app(config_object=Config, signer=None, ledger=None, **config_overrides):
    """Build the app and provision a fresh election database.

    ``signer`` and ``ledger`` default to the EC ring key service and the
    ledger gateway client from config. Provisioning failure raises
    ``ProvisioningError``; startup is expected to abort on it.
    """
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.config.update(config_overrides)

    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Pool size is fixed here for the life of the process.
    database = app.config['SENTINEL_DATABASE']
    pool_size = pool_size_for(app.config['SENTINEL_TOTAL_USERS'])
    app.config['SENTINEL_POOL_SIZE'] = pool_size
    app.config['SQLALCHEMY_DATABASE_URI'] = database_uri(database)
    app.config['SQLALCHEMY_ENGINE_OPTIONS'] = engine_options(database, pool_size)
    app.config.setdefault('RATELIMIT_DEFAULT', '10000/hour')

    # Fix proxy headers for HTTPS
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    db.init_app(app)
    jwt.init_app(app)
    limiter.init_app(app)
    TokenManager(app)

    @app.errorhandler(SentinelVoteError)
    def handle_sentinel_error(error):
        return jsonify(error.to_dict()), error.status_code

    register_routes(app)

    with app.app_context():
        configure_sqlite(db.engine)
        election = Election.from_config(
            db.engine,
            app.config,
            signer=signer or EcRingKeyService(),
            ledger=ledger or FabricLedgerClient.from_config(app.config),
            password_service=PasswordHashingService.from_config(app.config),
            audit_logger=AuditLogger(log_dir=app.config['AUDIT_LOG_DIR']),
        )
        election.provision_election(election.profile, app.config['SENTINEL_TOTAL_USERS'])
    app.extensions['sentinelvote'] = election

    app.logger.info("Database pool size %d for %d users", pool_size, app.config['SENTINEL_TOTAL_USERS'])
    return app
