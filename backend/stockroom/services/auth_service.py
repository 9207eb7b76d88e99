# Overview: Service-layer operations for auth; password hashing and credential checks.

"""
Authentication Service

WHY: Every stock mutation must be attributable. Identity here is
deliberately thin: users sign in with email + password and the stock
services only ever receive the resolved user id.

Passwords are stored as bcrypt hashes (cost 12 unless a caller lowers it,
e.g. test fixtures).
"""

import re

import bcrypt

from ..extensions import db
from ..models import User, ROLES, ROLE_STAFF
from ..validation import ValidationError, ConflictError
from stockroom.time_utils import utcnow

MIN_PASSWORD_LENGTH = 8

PASSWORD_RULES = (
    (re.compile(r"[A-Z]"), "an uppercase letter"),
    (re.compile(r"[a-z]"), "a lowercase letter"),
    (re.compile(r"\d"), "a digit"),
    (re.compile(r"[^A-Za-z0-9\s]"), "a symbol"),
)


class PasswordValidationError(ValidationError):
    """Password too weak to store."""


def validate_password_strength(password: str) -> None:
    """
    At least MIN_PASSWORD_LENGTH characters with an uppercase letter, a
    lowercase letter, a digit and a symbol. Reports every missing class at once.
    """
    password = password or ""
    problems = []
    if len(password) < MIN_PASSWORD_LENGTH:
        problems.append(f"at least {MIN_PASSWORD_LENGTH} characters")
    problems.extend(label for pattern, label in PASSWORD_RULES if not pattern.search(password))
    if problems:
        raise PasswordValidationError(f"Password needs {', '.join(problems)}")


def hash_password(password: str, *, rounds: int = 12) -> str:
    validate_password_strength(password)
    digest = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return digest.decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time check; a malformed stored hash simply fails."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("ascii"))
    except ValueError:
        return False


def _normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def create_user(
    email: str,
    password: str,
    full_name: str = "",
    role: str = ROLE_STAFF,
    *,
    rounds: int = 12,
) -> User:
    """Create a new active user. Emails are unique case-insensitively."""
    email = _normalize_email(email)
    if not email:
        raise ValidationError("email is required")
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
    if db.session.query(User).filter_by(email=email).first() is not None:
        raise ConflictError(f"User already exists: {email}")

    account = User(
        email=email,
        full_name=(full_name or "").strip(),
        password_hash=hash_password(password, rounds=rounds),
        role=role,
        is_active=True,
    )
    db.session.add(account)
    db.session.commit()
    return account


def authenticate(email: str, password: str) -> User | None:
    """
    Active user matching the credentials, or None. Records last_login_at.
    """
    account = db.session.query(User).filter_by(email=_normalize_email(email)).first()
    if account is None or not account.is_active:
        return None
    if not verify_password(password or "", account.password_hash):
        return None

    account.last_login_at = utcnow()
    db.session.commit()
    return account
