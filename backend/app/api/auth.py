from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, Header
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from app.api.deps import get_settings
from app.config.constants import (
    USER_ROLES,
    PHONE_MIN_LENGTH,
    PHONE_MAX_LENGTH,
    FULLNAME_MIN_LENGTH,
    FULLNAME_MAX_LENGTH,
)
from app.config.settings import Settings
from app.models.database import get_db
from app.models.user import User
from app.services.auth_service import (
    hash_password,
    verify_password,
    create_access_token,
    decode_token,
)
from app.services.user_service import user_service

router = APIRouter()


class RegisterRequest(BaseModel):
    phone: str = Field(..., min_length=PHONE_MIN_LENGTH, max_length=PHONE_MAX_LENGTH)
    full_name: str = Field(..., min_length=FULLNAME_MIN_LENGTH, max_length=FULLNAME_MAX_LENGTH)
    password: str = Field(..., min_length=6)
    role: str = Field("customer")

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        if v not in USER_ROLES:
            raise ValueError("Unsupported role")
        return v


class RegisterResponse(BaseModel):
    success: bool = True
    user_id: str
    token: str
    message: str


class LoginRequest(BaseModel):
    phone: str
    password: str


class LoginResponse(BaseModel):
    success: bool = True
    user_id: str
    token: str
    full_name: str
    role: str


class UserResponse(BaseModel):
    success: bool = True
    id: str
    phone: str
    full_name: str
    role: str
    avatar_url: Optional[str]
    created_at: Optional[str]


def _token_subject(authorization: Optional[str], settings: Settings) -> str:
    """User id carried by a Bearer token, 401 otherwise."""
    if not authorization:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing Authorization header")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid Authorization header")
    payload = decode_token(token, settings)
    if not payload:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")
    return user_id


async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings)
) -> User:
    user = await user_service.get_active(db, _token_subject(authorization, settings))
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


async def get_current_host(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings)
) -> User:
    """Like get_current_user, but customers get 403."""
    user_id = _token_subject(authorization, settings)
    host = await user_service.get_host(db, user_id)
    if host:
        return host
    if await user_service.get_active(db, user_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Host account required")
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")


@router.post("/auth/register", response_model=RegisterResponse, status_code=201)
async def register(
    request: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    # Check phone uniqueness
    if await user_service.get_by_phone(db, request.phone):
        raise HTTPException(status_code=409, detail="Phone already in use")

    user = User(
        phone=request.phone,
        full_name=request.full_name,
        hashed_password=hash_password(request.password),
        role=request.role,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=409, detail="Phone already in use")
    await db.refresh(user)

    token = create_access_token(str(user.id), settings=settings)
    return RegisterResponse(user_id=user.id, token=token, message="User registered")


@router.post("/auth/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    user = await user_service.get_by_phone(db, request.phone)
    if not user or not user.hashed_password or not user.is_active:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not verify_password(request.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    token = create_access_token(str(user.id), settings=settings)
    return LoginResponse(
        user_id=user.id,
        token=token,
        full_name=user.full_name,
        role=user.role,
    )


@router.get("/auth/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_user)):
    return UserResponse(
        id=current_user.id,
        phone=current_user.phone,
        full_name=current_user.full_name,
        role=current_user.role,
        avatar_url=current_user.avatar_url,
        created_at=current_user.created_at.isoformat() if current_user.created_at else None,
    )
