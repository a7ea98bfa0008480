# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Users, credentials and the bcrypt password hashes behind them.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Session tokens managed separately (see session_service.py)
- Inactive users cannot authenticate
"""

import bcrypt
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User, ROLE_STAFF
from ..validation import ConflictError, is_storable_id
from stockledger.time_utils import utcnow
from .errors import NotFoundError

USER_MUTABLE_FIELDS = {"name", "email", "role", "is_active"}


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """Verify password against bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed stored hash
        return False


def create_user(name: str, email: str, password: str, role: str = ROLE_STAFF) -> User:
    """
    Create new user with bcrypt password hashing.

    Raises:
        PasswordValidationError: weak password
        ConflictError: email already registered
    """
    email = email.strip().lower()
    if db.session.query(User.id).filter_by(email=email).first() is not None:
        raise ConflictError("User already exists")

    user = User(
        name=name.strip(),
        email=email,
        password_hash=hash_password(password),
        role=role,
        is_active=True,
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("User already exists")
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Authenticate user by email and password.

    Returns User if credentials are valid and the account is active, None otherwise.
    """
    if not email or not password:
        return None

    user = db.session.query(User).filter_by(email=email.strip().lower()).first()
    if user is None or not user.is_active:
        return None

    if not verify_password(password, user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def list_users() -> list[User]:
    return (
        db.session.query(User)
        .filter(User.is_active.is_(True))
        .order_by(User.name.asc(), User.id.asc())
        .all()
    )


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id) if is_storable_id(user_id) else None
    if user is None:
        raise NotFoundError("User not found")
    return user


def update_user(*, user_id: int, patch: dict) -> User:
    """
    Update name, email, role or is_active.

    Deactivating a user revokes their sessions.
    """
    from .session_service import revoke_all_user_sessions

    user = get_user(user_id)

    if patch.get("email") is not None:
        clash = (
            db.session.query(User.id)
            .filter(User.email == patch["email"], User.id != user_id)
            .first()
        )
        if clash is not None:
            raise ConflictError("Email already in use")

    for k, v in patch.items():
        if k in USER_MUTABLE_FIELDS:
            setattr(user, k, v)

    if patch.get("is_active") is False:
        revoke_all_user_sessions(user_id, reason="User deactivated", commit=False)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("Email already in use")
    return user
