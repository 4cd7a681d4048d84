"""
FastAPI dependencies for authentication and the service container.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from jose import JWTError, jwt

from ghostwriter.core.container import ServiceContainer


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


async def get_current_user_id(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    container: ServiceContainer = Depends(get_container),
) -> str:
    """
    Extract and validate user ID from JWT token.

    For development, allows the configured dev user if no token is provided
    or the token is invalid. In other environments a valid JWT is required.
    """
    settings = container.settings

    # Development mode - be lenient with auth
    if settings.environment == "development":
        if not authorization:
            return settings.dev_user_id

        # Try to validate, but fall back to dev user if it fails
        try:
            scheme, token = authorization.split()
            if scheme.lower() == "bearer":
                payload = jwt.decode(
                    token,
                    settings.jwt_secret_key,
                    algorithms=[settings.jwt_algorithm],
                )
                user_id = payload.get("sub")
                if user_id:
                    return user_id
        except (ValueError, JWTError):
            pass  # Fall through to return dev user

        return settings.dev_user_id

    # Production mode - strict validation
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Extract token from "Bearer <token>"
    try:
        scheme, token = authorization.split()
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format",
        )
    if scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication scheme",
        )

    # Decode and validate JWT
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id: Optional[str] = payload.get("sub")
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )
    return user_id


async def get_current_user(
    user_id: str = Depends(get_current_user_id),
    container: ServiceContainer = Depends(get_container),
) -> str:
    """Authenticated user id; the user and a pending profile are created on first sight."""
    await container.users.ensure_user(user_id)
    return user_id
