from fastapi import APIRouter, Depends, HTTPException, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from app.modules.auth.schemas import (
    LoginRequest, RegisterRequest, TokenResponse, RegisterResponse,
    SetRoleRequest
)
from app.modules.auth.service import AuthService
from app.core.dependencies import get_auth_service, get_current_user, get_model_store, is_model_admin
from app.config.permissions_config import get_permission_matrix
from app.modules.models.store import ModelStore, ModelStoreError
from typing import Dict

router = APIRouter(prefix="/auth", tags=["auth"])

# Security scheme for JWT Bearer token
security = HTTPBearer()


def get_current_token(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """Extract JWT token from Authorization header"""
    return credentials.credentials


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    register_data: RegisterRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Register a new user"""
    return service.register(register_data)


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Login and get access token"""
    return service.login(login_data)


@router.post("/logout", status_code=200)
async def logout(
    token: str = Depends(get_current_token),
    service: AuthService = Depends(get_auth_service)
):
    """Logout and invalidate token"""
    service.logout(token)
    return {"message": "Logged out successfully"}


@router.get("/me")
def get_me(
    current_user: Dict = Depends(get_current_user),
    store: ModelStore = Depends(get_model_store),
):
    """Get current authenticated user and their effective permissions per model (for frontend UI)."""
    try:
        declarations = store.list()
    except ModelStoreError:
        raise HTTPException(status_code=500, detail="Storage operation failed")
    matrix = get_permission_matrix(declarations, current_user["role"])
    return {
        "id": current_user["id"],
        "email": current_user.get("email"),
        "role": current_user["role"],
        "is_model_admin": is_model_admin(current_user),
        "permissions": matrix["models"],
    }


@router.post("/set-role", status_code=200)
async def set_role(
    request: SetRoleRequest,
    current_user: Dict = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service)
):
    """Set a user's role (requires current user to be a model administrator)"""
    if not is_model_admin(current_user):
        raise HTTPException(status_code=403, detail="Only administrators can assign roles")

    service.set_role(request.user_id, request.role)
    return {
        "message": f"User {request.user_id} role set to {request.role}",
        "user_id": request.user_id,
        "role": request.role
    }
