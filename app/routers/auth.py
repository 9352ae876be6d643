"""Auth router - caller identity from bearer tokens."""
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from app.utils.auth import verify_access_token
from app.utils.permissions import PermissionContext


router = APIRouter(prefix="/auth", tags=["auth"])
security = HTTPBearer(auto_error=False)


async def get_permission_context(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> PermissionContext:
    """
    Dependency to get the caller's identity and role from a JWT token.

    Args:
        credentials: HTTP bearer credentials

    Returns:
        Permission context for the caller

    Raises:
        HTTPException: If token is missing or invalid (401)
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    try:
        return verify_access_token(credentials.credentials)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )


@router.get("/me")
async def get_current_identity(
    context: PermissionContext = Depends(get_permission_context),
):
    """Return the authenticated caller's id and role."""
    return {"user_id": context.user_id, "role": context.role.value}
