# sentinelvote/security/token_manager.py
from datetime import timedelta

from flask import Flask
from flask_jwt_extended import create_access_token


# JWT access tokens for voters and the central authority.
# Identity is the email; role and constituency travel as claims.
class TokenManager:
    def __init__(self, app: Flask = None):
        if app:
            self.init_app(app)

    def init_app(self, app: Flask):
        app.config.setdefault("JWT_SECRET_KEY", "change_this_secret_key")
        app.config.setdefault("JWT_ACCESS_TOKEN_EXPIRES", timedelta(hours=1))
        app.extensions["sentinelvote.tokens"] = self

    def issue_token(self, email: str, is_central_authority: bool, constituency: str = "",
                    expires_in: int = None) -> str:
        claims = {
            "is_central_authority": bool(is_central_authority),
            "constituency": constituency or "",
        }
        expires_delta = timedelta(seconds=expires_in) if expires_in else None
        return create_access_token(identity=email, additional_claims=claims, expires_delta=expires_delta)
