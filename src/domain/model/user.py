from dataclasses import asdict, dataclass
from datetime import datetime

# Fields that never leave the server.
PRIVATE_FIELDS = frozenset({'password_hash', 'otp', 'otp_expiry'})


@dataclass
class User:
    """Domain model representing a registered user and its auth state."""
    id: str
    username: str
    phone: str
    email: str
    created_at: datetime
    updated_at: datetime
    password_hash: str | None = None
    otp: str | None = None
    otp_expiry: datetime | None = None
    is_verified: bool = False
    last_login: datetime | None = None
    total_amount: float = 0.0
    deposited_amount: float = 0.0
    withdrawn_amount: float = 0.0

    @property
    def has_pending_otp(self) -> bool:
        return self.otp is not None and self.otp_expiry is not None

    def public_profile(self) -> dict:
        """Return the user as a dict without password hash or OTP state."""
        return {k: v for k, v in asdict(self).items() if k not in PRIVATE_FIELDS}
