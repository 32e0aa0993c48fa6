# sentinelvote/encryption/password_hashing.py

import re
from argon2 import PasswordHasher
from argon2.exceptions import HashingError, InvalidHashError, VerificationError

# Argon2id password hashing for voter and authority accounts


class PasswordHashingService:
    def __init__(self, time_cost=3, memory_cost=65536, parallelism=4):
        self.ph = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
            hash_len=32,
            salt_len=16,
        )

    @classmethod
    def from_config(cls, config):
        return cls(
            time_cost=config.get('ARGON2_TIME_COST', 3),
            memory_cost=config.get('ARGON2_MEMORY_COST', 65536),
        )

    def hash_password(self, password: str, check_strength: bool = True) -> str:
        # Seeded accounts use fixed well-known passwords, so they skip the policy.
        if check_strength and not self.is_strong_password(password):
            raise ValueError("Password does not meet security requirements")
        try:
            return self.ph.hash(password)
        except HashingError as e:
            raise ValueError(f"Password hashing failed: {str(e)}")

    def verify_password(self, password: str, hash_value: str) -> bool:
        if not password or not hash_value:
            return False
        try:
            return self.ph.verify(hash_value, password)
        except (VerificationError, InvalidHashError):
            return False

    def needs_rehash(self, hash_value: str) -> bool:
        return self.ph.check_needs_rehash(hash_value)

    def is_strong_password(self, password: str) -> bool:
        if len(password) < 12:
            return False
        has_upper = bool(re.search(r'[A-Z]', password))
        has_lower = bool(re.search(r'[a-z]', password))
        has_digit = bool(re.search(r'\d', password))
        has_special = bool(re.search(r'[!@#$%^&*(),.?":{}|<>]', password))
        return sum([has_upper, has_lower, has_digit, has_special]) >= 3
