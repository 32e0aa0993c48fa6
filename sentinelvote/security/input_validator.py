# sentinelvote/security/input_validator.py

import html
import json
import re

import bleach

from sentinelvote.config import MAX_TOTAL_USERS, MIN_TOTAL_USERS
from sentinelvote.errors import ValidationError

# Request validation, run before anything touches storage or the ledger.

PROFILES = ('production', 'simulation', 'simulation-full')
VOTE_FIELDS = ('vote', 'signature', 'constituency', 'timestamp')


class InputValidator:
    def __init__(self):
        self.patterns = {
            'email': re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'),
            'public_key_pem': re.compile(
                r'^-----BEGIN PUBLIC KEY-----\r?\n[A-Za-z0-9+/=\r\n]+-----END PUBLIC KEY-----\s*$'),
            'private_key_pem': re.compile(
                r'^-----BEGIN (EC )?PRIVATE KEY-----\r?\n[A-Za-z0-9+/=\r\n]+-----END (EC )?PRIVATE KEY-----\s*$'),
            'xss_script': re.compile(r'<script[^>]*>.*?</script>', re.IGNORECASE | re.DOTALL),
            'xss_event': re.compile(r'\bon\w+\s*=', re.IGNORECASE),
        }

    def sanitize_string(self, input_str, max_length=255):
        if not isinstance(input_str, str):
            raise ValidationError("Input must be a string")
        input_str = input_str[:max_length]
        sanitized = re.sub(self.patterns['xss_script'], '', input_str)
        sanitized = re.sub(self.patterns['xss_event'], '', sanitized)
        sanitized = bleach.clean(sanitized, tags=[], attributes={}, strip=True)
        return html.unescape(sanitized).strip()

    def validate_email(self, email):
        return isinstance(email, str) and len(email) <= 254 and bool(self.patterns['email'].match(email))

    def require_email(self, email):
        if not self.validate_email(email):
            raise ValidationError("Invalid email")
        return email

    def validate_profile(self, profile):
        if profile not in PROFILES:
            raise ValidationError(f"Invalid profile, use one of: {', '.join(PROFILES)}")
        return profile

    def validate_user_count(self, user_count):
        try:
            count = int(user_count)
        except (TypeError, ValueError):
            raise ValidationError("Invalid number of users")
        if isinstance(user_count, bool) or not MIN_TOTAL_USERS <= count <= MAX_TOTAL_USERS:
            raise ValidationError(f"Number of users must be between {MIN_TOTAL_USERS} and {MAX_TOTAL_USERS}")
        return count

    def validate_public_key_pem(self, public_key):
        if not isinstance(public_key, str) or not self.patterns['public_key_pem'].match(public_key):
            raise ValidationError("Missing or malformed publicKey parameter")
        return public_key

    def validate_private_key_pem(self, private_key):
        if not isinstance(private_key, str) or not self.patterns['private_key_pem'].match(private_key):
            raise ValidationError("Malformed privateKey parameter")
        return private_key

    def validate_vote_payload(self, raw_payload):
        """Check a signed-vote body and return it as text, byte for byte."""
        if not raw_payload:
            raise ValidationError("Missing vote payload")
        if isinstance(raw_payload, bytes):
            try:
                payload = raw_payload.decode('utf-8')
            except UnicodeDecodeError:
                raise ValidationError("Vote payload must be UTF-8 encoded")
        else:
            payload = raw_payload

        try:
            vote = json.loads(payload)
        except ValueError:
            raise ValidationError("Vote payload must be JSON")
        if not isinstance(vote, dict):
            raise ValidationError("Vote payload must be a JSON object")
        missing = [field for field in VOTE_FIELDS if vote.get(field) in (None, '')]
        if missing:
            raise ValidationError(f"Missing required vote field: {', '.join(missing)}")
        return payload
