from fastapi import APIRouter, Depends

from app.core.dependencies import get_auth_service
from app.models.schemas import AuthTokens, Envelope, LoginRequest, RefreshRequest, RegisterRequest
from app.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=Envelope[AuthTokens])
async def register(request: RegisterRequest, service: AuthService = Depends(get_auth_service)):
    """Register a new user and issue a token pair"""
    tokens = await service.register(request.email, request.name, request.password)
    return Envelope(data=tokens)


@router.post("/login", response_model=Envelope[AuthTokens])
async def login(request: LoginRequest, service: AuthService = Depends(get_auth_service)):
    """Exchange credentials for a token pair"""
    tokens = await service.login(request.email, request.password)
    return Envelope(data=tokens)


@router.post("/refresh", response_model=Envelope[AuthTokens])
async def refresh(request: RefreshRequest, service: AuthService = Depends(get_auth_service)):
    """Exchange a refresh token for a fresh token pair"""
    tokens = await service.refresh(request.refresh_token)
    return Envelope(data=tokens)
