"""Account endpoints: sign-up, login and the current user.

Login returns the token in the body and also sets it as an HttpOnly
cookie named "token", the first place the credential verifier looks.
"""

from __future__ import annotations

import logging
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field

from app.api.dependencies import Repos, get_current_user
from app.api.errors import Envelope
from app.api.schemas import UserOut
from app.core import config
from app.core.errors import Unauthorized, ValidationError
from app.core.metrics import AUTH_FAILURES
from app.models.user import User
from app.services import auth_service, token_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/auth", tags=["auth"])


# --- Request / Response schemas -------------------------------------------


class SignupIn(BaseModel):
    first_name: str = Field(alias="firstName")
    last_name: str = Field(alias="lastName")
    email: str
    password: str
    confirm_password: str | None = Field(default=None, alias="confirmPassword")
    account_type: Literal["Student", "Instructor"] = Field(
        default="Student", alias="accountType"
    )

    model_config = {"populate_by_name": True}


class LoginIn(BaseModel):
    email: str
    password: str


class LoginOut(BaseModel):
    token: str
    user: UserOut


# --- POST /v1/auth/signup -------------------------------------------------


@router.post(
    "/signup",
    response_model=Envelope[UserOut],
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def signup(payload: SignupIn, repos: Repos) -> Envelope[UserOut]:
    if payload.confirm_password is not None and payload.confirm_password != payload.password:
        raise ValidationError(
            "Password and Confirm Password Does not Match. Please Try Again.",
            field="confirm_password",
        )
    user = await auth_service.register_user(
        repos.users,
        email=payload.email,
        password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
        role=payload.account_type,
    )
    return Envelope(message="User registered successfully", data=UserOut.from_user(user))


# --- POST /v1/auth/login --------------------------------------------------


@router.post("/login", response_model=Envelope[LoginOut], response_model_exclude_none=True)
async def login(payload: LoginIn, repos: Repos, response: Response) -> Envelope[LoginOut]:
    user = await auth_service.authenticate_user(repos.users, payload.email, payload.password)
    if user is None:
        AUTH_FAILURES.labels(reason="bad_credentials").inc()
        logger.info("Login failed  email=%s", payload.email.strip().lower())
        raise Unauthorized("Invalid email or password")

    token = token_service.create_access_token(user=user)
    response.set_cookie(
        "token",
        token,
        httponly=True,
        secure=config.SETTINGS.is_prod,
        samesite="lax",
        max_age=config.SETTINGS.jwt_ttl_hours * 3600,
    )
    logger.info("Login succeeded  user_id=%s role=%s", user.id, user.role)
    return Envelope(
        message="User Login Success",
        data=LoginOut(token=token, user=UserOut.from_user(user)),
    )


# --- GET /v1/auth/me ------------------------------------------------------


@router.get("/me", response_model=Envelope[UserOut], response_model_exclude_none=True)
async def me(user: Annotated[User, Depends(get_current_user)]) -> Envelope[UserOut]:
    return Envelope(data=UserOut.from_user(user))
