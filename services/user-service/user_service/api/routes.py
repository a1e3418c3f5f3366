"""HTTP route definitions for the user service."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from pydantic import BaseModel, EmailStr, Field, field_validator

from schemas import AccountView, TokenClaims

from ..domain.contracts import AuthResult, CredentialsInput, RegistrationInput
from ..domain.errors import IdentityAlreadyRegistered, InvalidCredentials, InvalidToken
from ..domain.service import AuthService
from ..security.passwords import MAX_SECRET_BYTES

logger = logging.getLogger(__name__)

router = APIRouter()

BEARER_PREFIX = "Bearer "


class SignUpRequest(BaseModel):
    """Payload accepted when registering a new account."""

    email: EmailStr
    password: str = Field(..., min_length=8)
    roles: list[str] | None = None

    @field_validator("password")
    @classmethod
    def _fits_hash_input(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_SECRET_BYTES:
            raise ValueError(f"Password must be at most {MAX_SECRET_BYTES} bytes long")
        return value


class SignInRequest(BaseModel):
    """Credentials presented at sign in."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class AuthResponse(BaseModel):
    """Token issuance response containing the bearer token and the public account view."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: AccountView

    @classmethod
    def from_result(cls, result: AuthResult) -> "AuthResponse":
        return cls(
            access_token=result.access_token,
            expires_in=result.expires_in,
            user=result.account,
        )


class MessageResponse(BaseModel):
    message: str


class UserValidationResponse(BaseModel):
    exists: bool
    user_id: str


def get_service(request: Request) -> AuthService:
    """Resolve the `AuthService` stored on the FastAPI application state."""
    service: AuthService = request.app.state.auth_service
    return service


def bearer_token(authorization: str | None = Header(default=None)) -> str:
    """Extract the raw token from an ``Authorization: Bearer`` header or fail with 401."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid Authorization header",
        )
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid Authorization header",
        )
    return token


@router.post("/auth/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def sign_up(
    payload: SignUpRequest,
    service: AuthService = Depends(get_service),
) -> AuthResponse:
    """Register an account and return its first access token."""
    logger.info("POST /auth/signup - %s", payload.email)
    try:
        result = service.register(
            RegistrationInput(identity=payload.email, secret=payload.password, roles=payload.roles)
        )
    except IdentityAlreadyRegistered as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return AuthResponse.from_result(result)


@router.post("/auth/signin", response_model=AuthResponse)
def sign_in(
    payload: SignInRequest,
    service: AuthService = Depends(get_service),
) -> AuthResponse:
    """Exchange valid credentials for a fresh access token."""
    logger.info("POST /auth/signin - %s", payload.email)
    try:
        result = service.authenticate(CredentialsInput(identity=payload.email, secret=payload.password))
    except InvalidCredentials as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc
    return AuthResponse.from_result(result)


@router.post("/auth/logout", response_model=MessageResponse)
def logout(
    token: str = Depends(bearer_token),
    service: AuthService = Depends(get_service),
) -> MessageResponse:
    """Revoke the presented bearer token."""
    logger.info("POST /auth/logout")
    service.revoke(token)
    return MessageResponse(message="Logged out successfully")


@router.post("/auth/verify", response_model=TokenClaims)
def verify(
    token: str = Depends(bearer_token),
    service: AuthService = Depends(get_service),
) -> TokenClaims:
    """Return the claims of a live token; expired, forged or revoked tokens get 401."""
    try:
        return service.verify(token)
    except InvalidToken as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc


@router.get("/users/{user_id}/validate", response_model=UserValidationResponse)
def validate_user(
    user_id: str,
    service: AuthService = Depends(get_service),
) -> UserValidationResponse:
    """Report whether an account with the identifier exists."""
    logger.info("GET /users/%s/validate", user_id)
    return UserValidationResponse(exists=service.account_exists(user_id), user_id=user_id)


@router.get("/users/{user_id}", response_model=AccountView)
def get_user(
    user_id: str,
    service: AuthService = Depends(get_service),
) -> AccountView:
    """Retrieve the public view of an account."""
    logger.info("GET /users/%s", user_id)
    account = service.get_account(user_id)
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User with ID {user_id} not found",
        )
    return account.public_view()
