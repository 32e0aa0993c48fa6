# tests/test_token_manager.py
import time

import pytest
from flask import Flask
from flask_jwt_extended import JWTManager, decode_token, get_jwt, get_jwt_identity, jwt_required

from sentinelvote.security.token_manager import TokenManager


@pytest.fixture
def app():
    app = Flask(__name__)
    app.config['TESTING'] = True
    app.config['JWT_SECRET_KEY'] = "test-jwt-secret-with-enough-length-for-hs256"
    JWTManager(app)

    @app.route("/whoami")
    @jwt_required()
    def whoami():
        claims = get_jwt()
        return {
            "identity": get_jwt_identity(),
            "is_central_authority": claims["is_central_authority"],
            "constituency": claims["constituency"],
        }

    return app


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture
def token_manager(app):
    return TokenManager(app)


def test_registers_extension(app, token_manager):
    assert app.extensions["sentinelvote.tokens"] is token_manager


def test_issue_token(app, token_manager):
    with app.app_context():
        token = token_manager.issue_token("user1@sentinelvote.tech", False, "Ang Mo Kio", expires_in=5)
        assert isinstance(token, str)
        decoded = decode_token(token)

    assert decoded["sub"] == "user1@sentinelvote.tech"
    assert decoded["exp"] - decoded["iat"] == 5


def test_default_expiry_is_one_hour(app, token_manager):
    with app.app_context():
        decoded = decode_token(token_manager.issue_token("user1@sentinelvote.tech", False))
    assert decoded["exp"] - decoded["iat"] == 3600


def test_expired_token_is_rejected(app, client, token_manager):
    with app.app_context():
        token = token_manager.issue_token("user2@sentinelvote.tech", False, expires_in=1)

    assert client.get("/whoami", headers={"Authorization": f"Bearer {token}"}).status_code == 200
    time.sleep(2)
    assert client.get("/whoami", headers={"Authorization": f"Bearer {token}"}).status_code == 401


def test_garbage_token(client, token_manager):
    rv = client.get("/whoami", headers={"Authorization": "Bearer not.a.token"})
    assert rv.status_code == 422


def test_claims_and_identity(app, client, token_manager):
    with app.app_context():
        token = token_manager.issue_token("admin@sentinelvote.tech", True, "")

    rv = client.get("/whoami", headers={"Authorization": f"Bearer {token}"})
    assert rv.get_json() == {
        "identity": "admin@sentinelvote.tech",
        "is_central_authority": True,
        "constituency": "",
    }
