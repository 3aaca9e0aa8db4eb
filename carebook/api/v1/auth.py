from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...api.deps import get_current_user
from ...services.auth_service import AuthService
from ...schemas.auth import (
    UserSignup, UserLogin, SignupResponse, LoginResponse,
    Identity, IdentityResponse
)
from ...models.user import User

router = APIRouter(tags=["Authentication"])

@router.post("/patients/signup", response_model=SignupResponse, status_code=status.HTTP_201_CREATED)
async def signup(
    user_data: UserSignup,
    db: Session = Depends(get_db)
):
    """Register a new user and return an access token."""
    auth_service = AuthService(db)
    user = auth_service.register_user(user_data)
    token = auth_service.issue_token(user)

    return SignupResponse(
        message="User created",
        user_id=user.id,
        token=token.access_token
    )

@router.post("/patients/login", response_model=LoginResponse)
async def login(
    login_data: UserLogin,
    db: Session = Depends(get_db)
):
    """Authenticate user and return an access token."""
    auth_service = AuthService(db)
    token = auth_service.authenticate_user(login_data)

    return LoginResponse(
        message="Login successful",
        token=token.access_token,
        expires_in=token.expires_in
    )

@router.get("/identity", response_model=IdentityResponse)
async def get_identity(
    current_user: User = Depends(get_current_user)
):
    """Resolve the bearer token to the identity it belongs to."""
    return IdentityResponse(
        message="User profile",
        user=Identity.model_validate(current_user)
    )
