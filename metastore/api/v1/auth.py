"""Authentication API routes."""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials

from metastore.dependencies import get_catalog_service, get_current_user, security_scheme
from metastore.schemas.session import SessionResponse
from metastore.schemas.user import LoginRequest, RegisterRequest, User, UserResponse
from metastore.services.catalog_service import CatalogService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    user: User = Depends(get_current_user),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """Accounts are created by a signed-in administrator; there is no self sign-up."""
    return await catalog.register_user(payload.email, payload.name, payload.password)


@router.post("/login", response_model=SessionResponse)
async def login(
    payload: LoginRequest,
    request: Request,
    catalog: CatalogService = Depends(get_catalog_service),
):
    user = await catalog.authenticate(payload.email, payload.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    return await catalog.open_session(user.id, request.headers.get("user-agent"))


@router.post("/logout")
async def logout(
    credentials: HTTPAuthorizationCredentials | None = Depends(security_scheme),
    catalog: CatalogService = Depends(get_catalog_service),
):
    if credentials is not None:
        await catalog.revoke_session(credentials.credentials)
    return {"message": "Logged out"}


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    return user
