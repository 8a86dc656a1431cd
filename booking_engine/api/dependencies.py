# ============================================================================
# FILE: booking_engine/api/dependencies.py
# Host authentication for dashboard routes
# ============================================================================
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional
from jose import JWTError, jwt
from uuid import UUID

from booking_engine.config.database import get_db
from booking_engine.config.settings import get_settings
from booking_engine.models.host import Host

# ============================================================================
# Security Schemes
# ============================================================================

# Tokens are issued by the identity service; this service only verifies them
jwt_security = HTTPBearer(
    scheme_name="JWT Bearer Token",
    description="Access token issued by the identity service"
)


# ============================================================================
# JWT Token Functions
# ============================================================================

def verify_access_token(token: str) -> dict:
    """
    Verify and decode a JWT access token.

    Args:
        token: JWT token string

    Returns:
        Decoded token payload

    Raises:
        HTTPException: If token is invalid or expired
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Could not validate credentials: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Refresh tokens must not open the dashboard
    token_type = payload.get("type")
    if token_type is not None and token_type != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return payload


# ============================================================================
# JWT Authentication Dependencies
# ============================================================================

async def get_current_host(
        credentials: HTTPAuthorizationCredentials = Depends(jwt_security),
        db: Session = Depends(get_db)
) -> Host:
    """
    Dependency to get the verified host from the bearer token.

    The token's ``sub`` claim is the host id.

    Raises:
        HTTPException 401: If token is invalid or host not found
        HTTPException 403: If the host is deactivated
    """
    payload = verify_access_token(credentials.credentials)

    host_id_str: Optional[str] = payload.get("sub")
    if host_id_str is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        host_id = UUID(host_id_str)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid host ID in token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    host = db.query(Host).filter(Host.id == host_id).first()

    if host is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Host not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not host.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive host account"
        )

    return host


def get_correlation_id(request: Request) -> Optional[str]:
    """Correlation ID set by correlation_id_middleware, forwarded to workers"""
    return getattr(request.state, "correlation_id", None)
