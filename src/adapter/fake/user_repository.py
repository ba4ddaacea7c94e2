"""In-memory implementation of UserRepository for testing."""

import uuid
from dataclasses import replace
from datetime import datetime, timezone

from domain.model.errors import DuplicateKeyError
from domain.model.user import User

UNIQUE_FIELDS = ('username', 'phone', 'email')


class FakeUserRepository:
    def __init__(self):
        self.store: dict[str, User] = {}

    def _colliding_field(self, values: dict, exclude_id: str | None = None) -> str | None:
        for field in UNIQUE_FIELDS:
            value = values.get(field)
            if value is None:
                continue
            for user in self.store.values():
                if user.id != exclude_id and getattr(user, field) == value:
                    return field
        return None

    # ── write operations ─────────────────────────────────────

    def create(
        self,
        username: str,
        phone: str,
        email: str,
        password_hash: str,
        otp: str | None = None,
        otp_expiry: datetime | None = None,
    ) -> User | None:
        field = self._colliding_field({'username': username, 'phone': phone, 'email': email})
        if field:
            raise DuplicateKeyError(field)

        user_id = uuid.uuid4().hex
        now = datetime.now(timezone.utc)

        user = User(
            id=user_id,
            username=username,
            phone=phone,
            email=email,
            created_at=now,
            updated_at=now,
            password_hash=password_hash,
            otp=otp,
            otp_expiry=otp_expiry,
        )
        self.store[user_id] = user
        return replace(user)

    def update(self, user_id: str, fields: dict) -> User | None:
        user = self.store.get(user_id)
        if not user:
            return None

        field = self._colliding_field(fields, exclude_id=user_id)
        if field:
            raise DuplicateKeyError(field)

        updated = replace(user, **fields, updated_at=datetime.now(timezone.utc))
        self.store[user_id] = updated
        return replace(updated)

    def delete(self, user_id: str) -> bool:
        return self.store.pop(user_id, None) is not None

    # ── read operations ──────────────────────────────────────

    def get_by_id(self, user_id: str) -> User | None:
        user = self.store.get(user_id)
        return replace(user) if user else None

    def find_by_identifier(
        self,
        username: str | None = None,
        phone: str | None = None,
        email: str | None = None,
    ) -> User | None:
        wanted = {'username': username, 'phone': phone, 'email': email}
        for user in self.store.values():
            if any(value is not None and getattr(user, field) == value
                   for field, value in wanted.items()):
                return replace(user)
        return None
