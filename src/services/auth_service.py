"""Auth service — registration, OTP verification, login and sessions.

Pure business logic with no HTTP dependencies.
Raises domain errors that the API layer maps to HTTP status codes.

Account states: a user is created unverified with a pending OTP and
becomes verified exactly once, when a matching unexpired OTP is submitted.
Only verified users can log in.
"""

import logging
from datetime import datetime, timedelta, timezone

from domain.model.errors import (
    DomainError,
    DuplicateKeyError,
    InvalidCredentialsError,
    NotFoundError,
    UnverifiedError,
)
from domain.model.user import User
from port.sms_sender import SmsSender
from port.user_repository import UserRepository
from services import credential_service, otp_service
from services.token_service import TokenService

logger = logging.getLogger(__name__)


def register(
    repo: UserRepository,
    sender: SmsSender,
    username: str,
    phone: str,
    email: str,
    password: str,
    confirm_password: str,
    otp_ttl: timedelta = otp_service.OTP_TTL,
) -> User:
    """Create an unverified user and send the first OTP.

    Returns the created User; no token is issued until the OTP is verified.

    Raises:
        ValidationError: malformed input
        ConflictError: username, phone or email already taken
        DispatchError: SMS could not be sent; the new user is deleted again
    """
    username, phone, email = credential_service.validate_registration(
        username, phone, email, password, confirm_password,
    )
    credential_service.ensure_unique(repo, username=username, phone=phone, email=email)

    otp, expiry = otp_service.new_otp(ttl=otp_ttl)
    try:
        user = repo.create(
            username=username,
            phone=phone,
            email=email,
            password_hash=credential_service.hash_password(password),
            otp=otp,
            otp_expiry=expiry,
        )
    except DuplicateKeyError as e:
        # Lost a race with a concurrent registration.
        raise credential_service.conflict(e.field)
    if not user:
        raise DomainError("Registration failed")

    try:
        otp_service.send(sender, user, purpose='registration', ttl=otp_ttl)
    except Exception:
        repo.delete(user.id)
        logger.warning("Registration rolled back after failed OTP dispatch", extra={"userId": user.id})
        raise

    logger.info("User registered", extra={"userId": user.id, "username": username})
    return user


def resend_otp(
    repo: UserRepository,
    sender: SmsSender,
    phone: str,
    otp_ttl: timedelta = otp_service.OTP_TTL,
) -> User:
    """Overwrite the user's OTP with a new one and send it.

    Raises:
        ValidationError: malformed phone
        NotFoundError: no user with that phone
        DispatchError: SMS failed; the user record is kept
    """
    phone = credential_service.validate_phone(phone)
    user = repo.find_by_identifier(phone=phone)
    if not user:
        raise NotFoundError("User not found")
    return otp_service.issue(repo, sender, user, purpose='resend', ttl=otp_ttl)


def verify_otp(
    repo: UserRepository,
    tokens: TokenService,
    phone: str,
    otp: str,
    now: datetime | None = None,
) -> tuple[str, User]:
    """Confirm the OTP, mark the user verified and start a session.

    Returns (token, user).

    Raises:
        ValidationError: malformed phone or OTP
        NotFoundError: no user with that phone
        InvalidCodeError: wrong code, or no code pending (already verified)
        OtpExpiredError: right code, too late
    """
    phone, otp = credential_service.validate_otp_request(phone, otp)
    user = repo.find_by_identifier(phone=phone)
    user = otp_service.verify(repo, user, otp, now=now)
    user = _stamp_login(repo, user)

    logger.info("OTP verified", extra={"userId": user.id})
    return tokens.issue(user.id), user


def login(
    repo: UserRepository,
    tokens: TokenService,
    username_or_phone: str,
    password: str,
) -> tuple[str, User]:
    """Authenticate by username or phone plus password.

    Unknown identifier and wrong password raise the same error so the
    response does not reveal which one was wrong.

    Raises:
        ValidationError: empty fields
        InvalidCredentialsError: unknown identifier or wrong password
        UnverifiedError: credentials are right but the OTP was never confirmed
    """
    identifier = credential_service.validate_login(username_or_phone, password)
    user = repo.find_by_identifier(username=identifier, phone=identifier)
    if not user or not credential_service.verify_password(password, user.password_hash):
        raise InvalidCredentialsError()
    if not user.is_verified:
        raise UnverifiedError()

    user = _stamp_login(repo, user)
    logger.info("User logged in", extra={"userId": user.id})
    return tokens.issue(user.id), user


def current_user(repo: UserRepository, tokens: TokenService, token: str) -> User:
    """Resolve a bearer token to its user.

    Raises:
        TokenExpiredError, InvalidTokenError: token rejected
        NotFoundError: token is valid but the user no longer exists
    """
    user_id = tokens.verify(token)
    user = repo.get_by_id(user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def logout(tokens: TokenService, token: str | None) -> None:
    """Best-effort logout. Never raises.

    Tokens are stateless and stay valid until they expire; the client
    discards its copy.
    """
    if not token:
        return
    try:
        user_id = tokens.verify(token)
    except DomainError:
        return
    logger.info("User logged out", extra={"userId": user_id})


def update_profile(
    repo: UserRepository,
    user: User,
    username: str | None = None,
    email: str | None = None,
    phone: str | None = None,
) -> User:
    """Change username, email and/or phone, keeping them unique.

    Raises:
        ValidationError: malformed field
        ConflictError: value already used by another user
        NotFoundError: user vanished
    """
    fields = credential_service.validate_profile_update(username=username, email=email, phone=phone)
    changes = {k: v for k, v in fields.items() if v != getattr(user, k)}
    if not changes:
        return user

    credential_service.ensure_unique(repo, exclude_id=user.id, **changes)
    try:
        updated = repo.update(user.id, changes)
    except DuplicateKeyError as e:
        raise credential_service.conflict(e.field)
    if updated is None:
        raise NotFoundError("User not found")

    logger.info("Profile updated", extra={"userId": user.id, "fields": sorted(changes)})
    return updated


def _stamp_login(repo: UserRepository, user: User) -> User:
    # Login succeeds even if the timestamp write fails.
    updated = repo.update(user.id, {'last_login': datetime.now(timezone.utc)})
    return updated or user
