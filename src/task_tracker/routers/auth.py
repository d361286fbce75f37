from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ..deps import get_auth_service
from ..schemas import ErrorResponse, LoginRequest, SignupRequest, SignupResponse, TokenResponse, UserOut
from ..services import AuthService

router = APIRouter(tags=["auth"])


# PUBLIC_INTERFACE
@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Sign Up",
    description="Register a new user and return a bearer token for it.",
    responses={
        201: {"description": "User created"},
        400: {"model": ErrorResponse, "description": "Validation error or username already exists"},
        500: {"model": ErrorResponse, "description": "Failed to create user"},
    },
)
def signup(payload: SignupRequest, service: AuthService = Depends(get_auth_service)) -> SignupResponse:
    """
    Create a user account.
    """
    result = service.signup(payload.username, payload.password)
    return SignupResponse(
        message="User created successfully",
        token=result["token"],
        user=UserOut(**AuthService.public_user(result["user"])),
    )


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Log In",
    description="Exchange username and password for a bearer token valid for one hour.",
    responses={
        200: {"description": "Authenticated"},
        400: {"model": ErrorResponse, "description": "Validation error"},
        401: {"model": ErrorResponse, "description": "Invalid credentials"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
)
def login(payload: LoginRequest, service: AuthService = Depends(get_auth_service)) -> TokenResponse:
    """
    Log in with existing credentials.
    """
    return TokenResponse(token=service.login(payload.username, payload.password))
