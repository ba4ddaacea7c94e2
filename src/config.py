"""Runtime configuration loaded from environment variables."""

import os
from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, built once at startup and passed to services."""
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"
    jwt_expiration_days: int = 7
    otp_ttl_minutes: int = 5
    mongo_url: str | None = None
    mongodb_database: str = "solar_wealth"
    twilio_sid: str | None = None
    twilio_auth_token: str | None = None
    twilio_phone_number: str | None = None
    sms_country_code: str = "+91"

    @property
    def otp_ttl(self) -> timedelta:
        return timedelta(minutes=self.otp_ttl_minutes)

    @classmethod
    def from_env(cls) -> "Settings":
        secret = os.getenv("JWT_SECRET_KEY")
        if not secret:
            raise ValueError(
                "JWT_SECRET_KEY environment variable is required. "
                "Generate a secure key with: openssl rand -hex 32"
            )
        return cls(
            jwt_secret_key=secret,
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            jwt_expiration_days=int(os.getenv("JWT_EXPIRATION_DAYS", 7)),
            otp_ttl_minutes=int(os.getenv("OTP_TTL_MINUTES", 5)),
            mongo_url=os.getenv("MONGO_URL"),
            mongodb_database=os.getenv("MONGODB_DATABASE", "solar_wealth"),
            twilio_sid=os.getenv("TWILIO_SID"),
            twilio_auth_token=os.getenv("TWILIO_AUTH_TOKEN"),
            twilio_phone_number=os.getenv("TWILIO_PHONE_NUMBER"),
            sms_country_code=os.getenv("SMS_COUNTRY_CODE", "+91"),
        )
