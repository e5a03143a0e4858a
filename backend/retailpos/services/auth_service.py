# Overview: Service-layer operations for auth; password hashing, login and access tokens.

"""
Authentication Service with Multi-Tenant Support

Passwords are hashed with bcrypt. Access tokens are stateless JWTs signed
with SECRET_KEY; each carries the user id, tenant id and role. Every
request re-loads the user so deactivated users and shops are locked out
immediately, even with an unexpired token.

MULTI-TENANT: Login is scoped by shop (tenant subdomain). Usernames are
only unique inside a shop.
"""

import re
from dataclasses import dataclass
from datetime import timedelta

import bcrypt
import jwt
from flask import current_app

from ..models import Tenant, User
from ..storage import Storage
from retailpos.time_utils import utcnow


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class AuthError(Exception):
    """Login failed. The message never says which credential was wrong."""
    pass


class TokenError(Exception):
    """Access token missing, malformed, expired or no longer valid."""
    pass


@dataclass
class AuthContext:
    """Identity established for one request."""
    user: User
    tenant: Tenant

    @property
    def tenant_id(self) -> int:
        return self.tenant.id


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

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


def hash_password(password: str, rounds: int | None = None) -> str:
    """
    Hash password using bcrypt (cost factor from BCRYPT_LOG_ROUNDS, default 12).

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    if rounds is None:
        rounds = current_app.config.get("BCRYPT_LOG_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() compares in constant time. A malformed stored hash
    counts as a mismatch.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def authenticate(storage: Storage, shop_id: str, username: str, password: str) -> AuthContext:
    """
    Resolve shop + username + password to an active user.

    Unknown shop, inactive shop, unknown or inactive user and wrong password
    all raise the same AuthError("Invalid credentials").
    """
    tenant = storage.get_tenant_by_subdomain(shop_id)
    if not tenant or not tenant.is_active:
        raise AuthError("Invalid credentials")

    user = storage.get_user_by_username(tenant.id, username)
    if not user or not user.is_active:
        raise AuthError("Invalid credentials")

    if not verify_password(password, user.password_hash):
        raise AuthError("Invalid credentials")

    storage.update_user(tenant.id, user.id, {"last_login_at": utcnow()})
    return AuthContext(user=user, tenant=tenant)


def issue_token(user: User) -> str:
    """Sign an access token for the user (HS256, JWT_EXPIRES_HOURS lifetime)."""
    now = utcnow()
    payload = {
        "sub": str(user.id),
        "tenant_id": user.tenant_id,
        "role": user.role,
        "iat": now,
        "exp": now + timedelta(hours=current_app.config["JWT_EXPIRES_HOURS"]),
    }
    return jwt.encode(
        payload,
        current_app.config["SECRET_KEY"],
        algorithm=current_app.config["JWT_ALGORITHM"],
    )


def resolve_token(storage: Storage, token: str) -> AuthContext:
    """
    Decode a bearer token and load its user.

    Raises TokenError if the signature or expiry is invalid, or the user or
    shop no longer exists or is inactive.
    """
    try:
        payload = jwt.decode(
            token,
            current_app.config["SECRET_KEY"],
            algorithms=[current_app.config["JWT_ALGORITHM"]],
            options={"require": ["sub", "exp"]},
        )
        user_id = int(payload["sub"])
        tenant_id = int(payload["tenant_id"])
    except jwt.ExpiredSignatureError:
        raise TokenError("Token expired")
    except (jwt.InvalidTokenError, KeyError, TypeError, ValueError):
        raise TokenError("Invalid token")

    tenant = storage.get_tenant(tenant_id)
    if not tenant or not tenant.is_active:
        raise TokenError("Invalid token")

    user = storage.get_user(tenant_id, user_id)
    if not user or not user.is_active:
        raise TokenError("Invalid token")

    return AuthContext(user=user, tenant=tenant)
