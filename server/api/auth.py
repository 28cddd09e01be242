# server/api/auth.py

import logging
from datetime import timedelta
from functools import lru_cache
from pydantic import BaseModel
from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.orm import Session

import config
from core.credentials import CredentialStore, public_user
from core.errors import LoginFailed, MalformedHeader, TokenError, Unauthenticated, ValidationError
from core.security import PasswordHasher, TokenService, make_password_context
from database import get_db


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


# -------------------------------
# Dependencies
# -------------------------------

@lru_cache
def get_token_service() -> TokenService:
    return TokenService(
        secret_key=config.JWT_SECRET_KEY,
        algorithm=config.JWT_ALGORITHM,
        ttl=timedelta(hours=config.ACCESS_TOKEN_EXPIRE_HOURS),
    )


@lru_cache
def get_password_hasher() -> PasswordHasher:
    return PasswordHasher(make_password_context(config.BCRYPT_ROUNDS))


def get_credential_store(
    db: Session = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
) -> CredentialStore:
    return CredentialStore(db, hasher)


def get_current_user_id(
    request: Request,
    authorization: str | None = Header(None),
    tokens: TokenService = Depends(get_token_service),
) -> int:
    """
    Authorization gate for every task endpoint.
    Expects `Authorization: Bearer <token>` and stores the verified
    user id on request.state. All failures surface as 401.
    """
    if not authorization:
        raise Unauthenticated("No token provided")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise MalformedHeader()

    try:
        user_id = tokens.verify(parts[1])
    except TokenError as e:
        logger.debug("Rejected token on %s %s: %s", request.method, request.url.path, e.message)
        raise Unauthenticated()

    request.state.user_id = user_id
    return user_id


# -------------------------------
# Schemas
# -------------------------------

class RegisterRequest(BaseModel):
    username: str | None = None
    email: str | None = None
    password: str | None = None


class LoginRequest(BaseModel):
    username: str | None = None
    password: str | None = None


class PublicUser(BaseModel):
    id: int
    username: str
    email: str


class RegisterResponse(BaseModel):
    message: str
    user: PublicUser


class LoginResponse(BaseModel):
    message: str
    token: str
    user: PublicUser


# -------------------------------
# Endpoints
# -------------------------------

@router.post("/register", response_model=RegisterResponse, status_code=201)
def register(req: RegisterRequest, store: CredentialStore = Depends(get_credential_store)):
    user = store.register(req.username, req.email, req.password)
    return {"message": "User registered successfully", "user": user}


@router.post("/login", response_model=LoginResponse)
def login(
    req: LoginRequest,
    store: CredentialStore = Depends(get_credential_store),
    tokens: TokenService = Depends(get_token_service),
):
    if not req.username or not req.password:
        raise ValidationError("Username and password are required")

    try:
        user = store.verify_credentials(req.username, req.password)
    except LoginFailed as e:
        logger.info("Failed login for username=%s (%s)", req.username, type(e).__name__)
        raise

    logger.info("User id=%s logged in", user.id)
    return {
        "message": "Login successful",
        "token": tokens.issue(user.id),
        "user": public_user(user),
    }
