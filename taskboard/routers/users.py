# PURPOSE: /api/users/register, /api/users/login, /api/users/me

import logging
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, status
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..api.errors import (
    DuplicateEmailError,
    InputValidationError,
    InvalidCredentialsError,
    UnauthenticatedError,
)
from ..auth import burn_password_check, get_current_identity, hash_password, verify_password
from ..models import AuthResponse, TokenClaims, UserCreate, UserLogin, UserPublic, normalize_email
from ..store_db import create_user, get_db, get_user, get_user_by_email
from ..tokens import TokenService, get_token_service

logger = logging.getLogger("taskboard.auth")

router = APIRouter(prefix="/users", tags=["auth"])


def auth_response(user, tokens: TokenService) -> AuthResponse:
    """Token + public projection; the shape shared by register, login and OAuth sign-in."""
    token = tokens.issue(TokenClaims(identity_id=user.id, role=user.role))
    return AuthResponse(token=token, user=UserPublic.model_validate(user))


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": UserCreate.model_json_schema()}},
        }
    },
)
def register_user(
    body: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    try:
        payload = UserCreate.model_validate(body)
    except ValidationError as err:
        # A registered email beats field errors: the client should go to login
        email = normalize_email(body.get("email"))
        if email is not None and get_user_by_email(db, email) is not None:
            raise DuplicateEmailError()
        raise InputValidationError.from_errors(err.errors())

    if get_user_by_email(db, payload.email) is not None:
        raise DuplicateEmailError()
    try:
        user = create_user(
            db,
            username=payload.username,
            email=payload.email,
            password_hash=hash_password(payload.password),
            role=payload.role,
        )
    except IntegrityError:
        # Lost a race with a concurrent registration of the same email
        raise DuplicateEmailError()
    logger.info("user registered id=%s role=%s", user.id, user.role)
    return auth_response(user, tokens)


@router.post("/login", response_model=AuthResponse)
def login(
    payload: UserLogin,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    user = get_user_by_email(db, payload.email)
    if user is None:
        burn_password_check(payload.password)
        logger.info("login failed reason=bad_credentials")
        raise InvalidCredentialsError()
    if not verify_password(payload.password, user.password_hash):
        logger.info("login failed reason=bad_credentials")
        raise InvalidCredentialsError()
    return auth_response(user, tokens)


@router.get("/me", response_model=UserPublic)
def me(identity: TokenClaims = Depends(get_current_identity), db: Session = Depends(get_db)):
    user = get_user(db, identity.identity_id)
    if user is None:
        raise UnauthenticatedError("Account no longer exists. Please register again.")
    return user
