"""Credential checks: input validation, password hashing, uniqueness.

Pure business logic with no HTTP dependencies. Validators collect every
field message before raising so clients can show them together.
"""

import re

import bcrypt
from email_validator import EmailNotValidError, validate_email

from domain.model.errors import ConflictError, ValidationError
from port.user_repository import UserRepository

BCRYPT_ROUNDS = 12

USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")
PHONE_RE = re.compile(r"^[0-9]{10}$")
OTP_RE = re.compile(r"^[0-9]{6}$")

CONFLICT_MESSAGES = {
    'username': "Username already exists",
    'phone': "Phone number already registered",
    'email': "Email already registered",
}


def sanitize(value):
    """Trim and drop angle brackets from free text. Non-strings pass through."""
    if not isinstance(value, str):
        return value
    return value.strip().replace('<', '').replace('>', '')


def normalize_email(value: str) -> str | None:
    """Return the lowercased normalized address, or None if it is not an email."""
    try:
        result = validate_email(value.strip(), check_deliverability=False)
    except EmailNotValidError:
        return None
    return result.normalized.lower()


# ── password hashing ─────────────────────────────────────────


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str | None) -> bool:
    if not hashed:
        return False
    return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))


# ── field rules ──────────────────────────────────────────────


def _username_errors(username: str) -> list[str]:
    errors = []
    if not 3 <= len(username) <= 30:
        errors.append("Username must be between 3 and 30 characters")
    if not USERNAME_RE.match(username):
        errors.append("Username can only contain letters, numbers, and underscores")
    return errors


def _phone_errors(phone: str) -> list[str]:
    if not PHONE_RE.match(phone):
        return ["Phone number must be 10 digits"]
    return []


def _password_errors(password: str) -> list[str]:
    errors = []
    if len(password) < 6:
        errors.append("Password must be at least 6 characters long")
    if not (re.search(r"[a-z]", password) and re.search(r"[A-Z]", password)
            and re.search(r"[0-9]", password)):
        errors.append(
            "Password must contain at least one uppercase letter, "
            "one lowercase letter, and one number"
        )
    return errors


def _raise_if(errors: list[str]) -> None:
    if errors:
        raise ValidationError("Validation failed", errors=errors)


# ── request validators ───────────────────────────────────────


def validate_registration(
    username: str, phone: str, email: str, password: str, confirm_password: str,
) -> tuple[str, str, str]:
    """Validate a registration form.

    Returns the sanitized (username, phone, email).

    Raises:
        ValidationError: with one message per failed rule
    """
    username, phone = sanitize(username), sanitize(phone)
    normalized_email = normalize_email(sanitize(email))

    errors = _username_errors(username) + _phone_errors(phone)
    if normalized_email is None:
        errors.append("Please provide a valid email address")
    errors += _password_errors(password)
    if confirm_password != password:
        errors.append("Passwords do not match")
    _raise_if(errors)
    return username, phone, normalized_email


def validate_login(username_or_phone: str, password: str) -> str:
    identifier = sanitize(username_or_phone)
    errors = []
    if not identifier:
        errors.append("Username or phone number is required")
    if not password:
        errors.append("Password is required")
    _raise_if(errors)
    return identifier


def validate_phone(phone: str) -> str:
    phone = sanitize(phone)
    _raise_if(_phone_errors(phone))
    return phone


def validate_otp_request(phone: str, otp: str) -> tuple[str, str]:
    phone, otp = sanitize(phone), sanitize(otp)
    errors = _phone_errors(phone)
    if not OTP_RE.match(otp):
        errors.append("OTP must be 6 digits")
    _raise_if(errors)
    return phone, otp


def validate_profile_update(
    username: str | None = None, email: str | None = None, phone: str | None = None,
) -> dict:
    """Validate the fields present in a profile update.

    Returns a dict holding only the provided, sanitized fields.
    """
    fields = {}
    errors = []
    if username:
        fields['username'] = sanitize(username)
        errors += _username_errors(fields['username'])
    if email:
        fields['email'] = normalize_email(sanitize(email))
        if fields['email'] is None:
            errors.append("Please provide a valid email address")
    if phone:
        fields['phone'] = sanitize(phone)
        errors += _phone_errors(fields['phone'])
    _raise_if(errors)
    return fields


# ── uniqueness ───────────────────────────────────────────────


def check_uniqueness(
    repo: UserRepository,
    username: str | None = None,
    phone: str | None = None,
    email: str | None = None,
    exclude_id: str | None = None,
) -> str | None:
    """Return the first field (username, phone, email order) already taken by another user."""
    for field, value in (('username', username), ('phone', phone), ('email', email)):
        if value is None:
            continue
        existing = repo.find_by_identifier(**{field: value})
        if existing and existing.id != exclude_id:
            return field
    return None


def conflict(field: str) -> ConflictError:
    return ConflictError(field, CONFLICT_MESSAGES.get(field))


def ensure_unique(
    repo: UserRepository,
    username: str | None = None,
    phone: str | None = None,
    email: str | None = None,
    exclude_id: str | None = None,
) -> None:
    """Raise ConflictError for the first taken field.

    This is a fast-path rejection; the store's unique constraint is the
    authority when two writes race.
    """
    field = check_uniqueness(repo, username, phone, email, exclude_id)
    if field:
        raise conflict(field)
