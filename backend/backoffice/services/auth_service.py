# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication and acting-user service.

WHY: Every workflow operation is attributed to an acting user, passed in
explicitly rather than read from request state. This module owns user
creation, password checks, role grants, and the ActingUser value the
routes hand to the other services.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters with upper, lower, digit and special char
- Session tokens managed separately (see session_service.py)
"""

from __future__ import annotations

import re
from dataclasses import dataclass

import bcrypt

from ..extensions import db
from ..models import User, UserRole
from ..models.auth import ROLE_ADMIN, VALID_ROLES
from ..time_utils import utcnow


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class AuthError(Exception):
    """Raised for user/role management errors."""
    pass


@dataclass(frozen=True)
class ActingUser:
    """
    Who is performing an operation.

    Built once per request (or CLI invocation) and passed down; services
    never look it up from global state.
    """
    id: str
    username: str
    roles: frozenset[str]

    @property
    def is_admin(self) -> bool:
        return ROLE_ADMIN in self.roles

    def has_role(self, role: str) -> bool:
        return role in self.roles

    def to_dict(self) -> dict:
        return {"id": self.id, "username": self.username, "roles": sorted(self.roles)}


def acting_user_for(user: User) -> ActingUser:
    return ActingUser(id=user.id, username=user.username, roles=frozenset(user.role_names))


def load_acting_user(user_id: str) -> ActingUser | None:
    user = db.session.get(User, user_id)
    if not user or not user.is_active:
        return None
    return acting_user_for(user)


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Hash password using bcrypt with cost factor 12 (strength validated first)."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() is timing-safe. A malformed stored hash counts as a
    mismatch.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(username: str, email: str, password: str, roles: list[str] | None = None) -> User:
    """
    Create a user with a bcrypt password hash and optional role grants.

    Raises:
        AuthError: username/email already taken or unknown role
        PasswordValidationError: password too weak
    """
    username = (username or "").strip()
    email = (email or "").strip().lower()
    if not username or not email:
        raise AuthError("username and email are required")

    existing = db.session.query(User).filter(
        db.or_(User.username == username, User.email == email)
    ).first()
    if existing:
        raise AuthError("Username or email already exists")

    for role in roles or []:
        if role not in VALID_ROLES:
            raise AuthError(f"Unknown role: {role}")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
    )
    db.session.add(user)
    db.session.flush()

    for role in sorted(set(roles or [])):
        db.session.add(UserRole(user_id=user.id, role=role))

    db.session.commit()
    return user


def authenticate(identifier: str, password: str) -> User | None:
    """
    Authenticate by username or email.

    Returns the User (and stamps last_login_at) when the credentials are
    valid and the account is active, None otherwise.
    """
    user = db.session.query(User).filter(
        db.or_(User.username == identifier, User.email == identifier.lower()),
        User.is_active.is_(True),
    ).first()

    if not user:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def assign_role(user_id: str, role: str) -> UserRole:
    """Grant a role to a user (no-op if already granted)."""
    if role not in VALID_ROLES:
        raise AuthError(f"Unknown role: {role}")

    if not db.session.get(User, user_id):
        raise AuthError("User not found")

    existing = db.session.query(UserRole).filter_by(user_id=user_id, role=role).first()
    if existing:
        return existing

    user_role = UserRole(user_id=user_id, role=role)
    db.session.add(user_role)
    db.session.commit()
    return user_role


def is_admin(user_id: str) -> bool:
    """Role lookup keyed by user id."""
    return db.session.query(UserRole).filter_by(user_id=user_id, role=ROLE_ADMIN).first() is not None
