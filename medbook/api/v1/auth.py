from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...api.deps import get_current_user, rate_limit_check
from ...services.auth_service import AuthService
from ...schemas.auth import (
    UserLogin, UserRegister, TokenResponse, UserResponse, RefreshTokenRequest
)
from ...schemas.common import ApiResponse
from ...models.user import User

router = APIRouter(prefix="/auth", tags=["Authentication"])

@router.post(
    "/register",
    response_model=ApiResponse[UserResponse],
    status_code=status.HTTP_201_CREATED
)
async def register(
    user_data: UserRegister,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Register a new user."""
    user = AuthService(db).register_user(user_data)
    return ApiResponse(
        message="User registered successfully",
        data=UserResponse.model_validate(user)
    )

@router.post("/login", response_model=ApiResponse[TokenResponse])
async def login(
    login_data: UserLogin,
    db: Session = Depends(get_db),
):
    """Authenticate user and return access tokens."""
    tokens = AuthService(db).authenticate_user(login_data)
    return ApiResponse(message="Login successful", data=tokens)

@router.post("/refresh", response_model=ApiResponse[TokenResponse])
async def refresh_token(
    refresh_data: RefreshTokenRequest,
    db: Session = Depends(get_db)
):
    """Refresh access token using refresh token."""
    tokens = AuthService(db).refresh_access_token(refresh_data.refresh_token)
    return ApiResponse(message="Token refreshed", data=tokens)

@router.post("/logout", response_model=ApiResponse[None])
async def logout(
    refresh_data: RefreshTokenRequest,
    db: Session = Depends(get_db)
):
    """Logout user by revoking refresh token."""
    success = AuthService(db).logout_user(refresh_data.refresh_token)
    return ApiResponse(message="Successfully logged out" if success else "Logout completed")

@router.get("/user-profile", response_model=ApiResponse[UserResponse])
@router.get("/me", response_model=ApiResponse[UserResponse], include_in_schema=False)
async def get_user_profile(
    current_user: User = Depends(get_current_user)
):
    """Get current user information."""
    return ApiResponse(
        message="User profile fetched successfully.",
        data=UserResponse.model_validate(current_user)
    )
