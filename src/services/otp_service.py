"""One-time password issuing and checking."""

import logging
import secrets
from datetime import datetime, timedelta, timezone

from domain.model.errors import DomainError, InvalidCodeError, NotFoundError, OtpExpiredError
from domain.model.user import User
from port.sms_sender import SmsSender
from port.user_repository import UserRepository

logger = logging.getLogger(__name__)

OTP_MIN = 100000
OTP_MAX = 999999
OTP_TTL = timedelta(minutes=5)

MESSAGES = {
    'registration': "Your OTP for Solar Wealth Grow registration is {otp}. Valid for {minutes} minutes.",
    'resend': "Your OTP for Solar Wealth Grow is {otp}. Valid for {minutes} minutes.",
}


def generate_code() -> str:
    """Uniform 6-digit code in [100000, 999999]."""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def new_otp(now: datetime | None = None, ttl: timedelta = OTP_TTL) -> tuple[str, datetime]:
    now = now or datetime.now(timezone.utc)
    return generate_code(), now + ttl


def send(sender: SmsSender, user: User, purpose: str = 'registration', ttl: timedelta = OTP_TTL) -> None:
    """Dispatch the user's stored OTP. DispatchError propagates to the caller."""
    body = MESSAGES[purpose].format(otp=user.otp, minutes=int(ttl.total_seconds() // 60))
    sender.send(user.phone, body)
    logger.info("OTP dispatched", extra={"userId": user.id, "purpose": purpose})


def issue(
    repo: UserRepository,
    sender: SmsSender,
    user: User,
    purpose: str = 'resend',
    now: datetime | None = None,
    ttl: timedelta = OTP_TTL,
) -> User:
    """Store a fresh OTP on the user, overwriting any previous one, then send it.

    Raises:
        NotFoundError: user disappeared before the write
        DispatchError: messaging provider failed; the new OTP stays stored
    """
    otp, expiry = new_otp(now, ttl)
    updated = repo.update(user.id, {'otp': otp, 'otp_expiry': expiry})
    if updated is None:
        if repo.get_by_id(user.id) is None:
            raise NotFoundError()
        raise DomainError("Failed to store OTP")
    send(sender, updated, purpose, ttl)
    return updated


def verify(
    repo: UserRepository,
    user: User | None,
    submitted_code: str,
    now: datetime | None = None,
) -> User:
    """Check a submitted code and mark the user verified.

    Clearing the OTP and setting is_verified happen in one store update.

    Raises:
        NotFoundError: no user
        InvalidCodeError: no pending code or the code differs
        OtpExpiredError: code matches but now >= expiry
    """
    if user is None:
        raise NotFoundError()

    code = submitted_code.strip() if isinstance(submitted_code, str) else str(submitted_code)
    if user.otp is None or user.otp != code:
        logger.info("OTP mismatch", extra={"userId": user.id})
        raise InvalidCodeError()

    now = now or datetime.now(timezone.utc)
    if user.otp_expiry is None or now >= user.otp_expiry:
        logger.info("OTP expired", extra={"userId": user.id})
        raise OtpExpiredError()

    updated = repo.update(user.id, {'otp': None, 'otp_expiry': None, 'is_verified': True})
    if updated is None:
        raise NotFoundError()
    return updated
