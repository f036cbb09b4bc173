from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_principal
from app.api.v1.auth.schemas import (
    LoginRequest,
    LoginResponse,
    PrincipalResponse,
    RegisterResponse,
    UserCreate,
)
from app.core.permissions import Principal
from app.domain.auth.service import AuthenticationService
from app.infrastructure.database import get_db

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, db: AsyncSession = Depends(get_db)):
    """Register a new bed or equipment manager account"""
    user = await AuthenticationService(db).register_user(user_data.model_dump())
    return {"message": "User registered successfully", "user": user}


@router.post("/login", response_model=LoginResponse)
async def login(login_data: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Exchange username and password for a bearer token"""
    user, token = await AuthenticationService(db).authenticate_user(
        login_data.username, login_data.password
    )
    return {"token": token, "user": user}


@router.get("/me", response_model=PrincipalResponse)
async def me(principal: Principal = Depends(get_current_principal)):
    """The identity and effective role this request resolves to"""
    return principal
