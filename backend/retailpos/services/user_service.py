# Overview: Service-layer operations for staff accounts within a shop.

from __future__ import annotations

from ..models import User
from ..storage import Storage
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    enforce_rules_user,
    validate_payload,
)
from .auth_service import hash_password

USER_POLICY = ModelValidationPolicy(
    writable_fields={"username", "email", "first_name", "last_name", "role", "is_active"},
    required_on_create={"username"},
)


def list_users(storage: Storage, tenant_id: int) -> list[User]:
    return storage.list_users(tenant_id)


def create_user(storage: Storage, tenant_id: int, payload: dict) -> User:
    """
    Create a user in the tenant from a request payload.

    Raises ValidationError, PasswordValidationError or ConflictError.
    """
    payload = dict(payload or {})
    password = payload.pop("password", None)
    if not password or not isinstance(password, str):
        raise ValidationError("password is required")

    fields = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=False)
    enforce_rules_user(fields)
    fields["password_hash"] = hash_password(password)
    return storage.create_user(tenant_id, fields)


def update_user(storage: Storage, tenant_id: int, user_id: int, payload: dict, actor: User) -> User:
    """
    Update profile, role, active flag or password of a tenant user.

    Admins cannot deactivate themselves or drop their own admin role.
    """
    payload = dict(payload or {})
    password = payload.pop("password", None)

    patch = validate_payload(model=User, payload=payload, policy=USER_POLICY, partial=True)
    enforce_rules_user(patch)

    if user_id == actor.id:
        if patch.get("is_active") is False:
            raise ValidationError("You cannot deactivate your own account")
        if "role" in patch and patch["role"] != actor.role:
            raise ValidationError("You cannot change your own role")

    if password is not None:
        if not isinstance(password, str):
            raise ValidationError("password must be a string")
        patch["password_hash"] = hash_password(password)

    user = storage.update_user(tenant_id, user_id, patch)
    if user is None:
        raise NotFoundError("User not found")
    return user


def require_active_user(
    storage: Storage,
    tenant_id: int,
    user_id,
    *,
    field: str,
    roles: tuple[str, ...] | None = None,
) -> User:
    """
    Resolve a user id taken from a request body inside the caller's tenant.

    A user from another tenant is reported exactly like a missing one.
    """
    if isinstance(user_id, bool) or not isinstance(user_id, int):
        raise ValidationError(f"{field} must be an integer")
    user = storage.get_user(tenant_id, user_id)
    if user is None or not user.is_active:
        raise ValidationError(f"{field} does not reference an active user of this shop")
    if roles is not None and user.role not in roles:
        raise ValidationError(f"{field} must reference a user with role: {', '.join(roles)}")
    return user
