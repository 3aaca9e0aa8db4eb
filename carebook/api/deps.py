from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional

from ..core.database import get_db
from ..core.pubsub import NotificationChannel
from ..core.security import (
    security, verify_token, AuthenticationError,
    AuthorizationError, UserRole, TokenPayload
)
from ..models.user import User
from ..schemas.auth import Identity
from ..services.identity_client import IdentityClient

async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> str:
    """Extract the raw bearer token from the Authorization header."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("No token provided")
    return credentials.credentials

# Credential Store: tokens are verified locally against the users table
async def get_current_user_token(
    token: str = Depends(get_bearer_token)
) -> TokenPayload:
    """Verify the JWT from the Authorization header."""
    token_payload = verify_token(token)
    if not token_payload:
        raise AuthenticationError("Invalid or expired token")

    # Check if token is access token
    if token_payload.token_type != "access":
        raise AuthenticationError("Invalid token type")

    return token_payload

async def get_current_user(
    token_payload: TokenPayload = Depends(get_current_user_token),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user from database."""
    if not token_payload.sub:
        raise AuthenticationError("Invalid token payload")

    user = db.query(User).filter(User.id == token_payload.sub).first()
    if not user:
        raise AuthenticationError("User not found")

    return user

# Booking and notification services: identities come from the Credential Store
def get_identity_client(request: Request) -> IdentityClient:
    """Process-wide Credential Store client created at startup."""
    return request.app.state.identity_client

def get_notification_channel(request: Request) -> Optional[NotificationChannel]:
    """Process-wide notification channel created at startup."""
    return getattr(request.app.state, "notification_channel", None)

async def get_current_identity(
    token: str = Depends(get_bearer_token),
    identity_client: IdentityClient = Depends(get_identity_client)
) -> Identity:
    """Resolve the caller through the Credential Store."""
    identity = await identity_client.get_identity(token)
    if not identity:
        raise AuthenticationError("Invalid token")
    return identity

async def get_admin_identity(
    identity: Identity = Depends(get_current_identity)
) -> Identity:
    """Require admin role."""
    if identity.role != UserRole.ADMIN:
        raise AuthorizationError("Admin access required")
    return identity
