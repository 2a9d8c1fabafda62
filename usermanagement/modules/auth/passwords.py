"""
Password hashing with bcrypt.
"""

import logging

import bcrypt

logger = logging.getLogger(__name__)


class PasswordHasher:
    """Salted, adaptive-cost one-way password hashing."""

    def __init__(self, rounds: int = 12):
        """
        Args:
            rounds: bcrypt cost factor (4-31)
        """
        if not 4 <= rounds <= 31:
            raise ValueError(f"bcrypt rounds must be between 4 and 31, got {rounds}")
        self.rounds = rounds

    def hash(self, password: str) -> str:
        """Hash a password with a fresh salt."""
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Verify a password against its hash."""
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError as e:
            logger.warning(f"Stored password hash could not be checked: {e}")
            return False
