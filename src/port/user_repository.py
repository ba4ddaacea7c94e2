from datetime import datetime
from typing import Protocol

from domain.model.user import User


class UserRepository(Protocol):
    """Protocol defining the interface for user data access.

    Unique fields are username, phone and email. Writes that collide raise
    DuplicateKeyError naming the first colliding field in that order.
    """
    def create(
        self,
        username: str,
        phone: str,
        email: str,
        password_hash: str,
        otp: str | None = None,
        otp_expiry: datetime | None = None,
    ) -> User | None:
        """Create a new unverified user. Return None if the store failed.

        Raises DuplicateKeyError when a unique field collides.
        """
        ...

    def update(self, user_id: str, fields: dict) -> User | None:
        """Apply all fields in one atomic write. Return the updated User or None if missing."""
        ...

    def delete(self, user_id: str) -> bool:
        """Delete a user. Return True if a record was removed."""
        ...

    def get_by_id(self, user_id: str) -> User | None:
        """Find a user by ID. Return User or None if not found."""
        ...

    def find_by_identifier(
        self,
        username: str | None = None,
        phone: str | None = None,
        email: str | None = None,
    ) -> User | None:
        """Find the first user matching any of the given fields."""
        ...
