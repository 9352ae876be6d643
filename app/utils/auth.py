"""Authentication utilities - JWT bearer tokens carrying a user id and role."""
from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt

from app.config import settings
from app.utils.permissions import PermissionContext, Role


def create_access_token(
    user_id: str,
    role: Role = Role.EMPLOYEE,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a JWT access token for a user.

    Args:
        user_id: User ID to encode in token
        role: Role claim used for authorization
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string

    Example:
        >>> token = create_access_token(user_id="emp123", role=Role.MANAGER)
        >>> isinstance(token, str)
        True
    """
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.jwt_expiration_minutes)

    to_encode = {
        "sub": user_id,
        "role": role.value,
        "exp": expire,
    }

    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_access_token(token: str) -> PermissionContext:
    """
    Verify and decode a JWT access token.

    Args:
        token: JWT token string to verify

    Returns:
        Permission context with the user id and role from the token

    Raises:
        JWTError: If token is invalid, expired, or carries an unknown role

    Example:
        >>> token = create_access_token(user_id="emp123")
        >>> verify_access_token(token).user_id
        'emp123'
    """
    payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    user_id: Optional[str] = payload.get("sub")

    if user_id is None:
        raise JWTError("Token payload missing 'sub' claim")

    try:
        role = Role(payload.get("role", Role.EMPLOYEE.value))
    except ValueError:
        raise JWTError("Token carries an unknown role")

    return PermissionContext(user_id=user_id, role=role)
