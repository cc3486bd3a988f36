"""
Core dependencies for route protection and access to process-wide services
"""

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.engine import Engine
from app.config import settings
from app.database.supabase_client import get_supabase
from app.modules.auth.service import AuthService
from supabase import Client
from typing import Dict, Any
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> Dict[str, Any]:
    """Extract current user info (id, email, role) from JWT token"""
    token = credentials.credentials
    return auth_service.get_current_user(token)


def is_model_admin(user_data: Dict[str, Any]) -> bool:
    """Check if user's role may administer model declarations"""
    return user_data.get("role") in settings.get_model_admin_roles_list()


def require_model_admin(user_data: Dict = Depends(get_current_user)) -> Dict[str, Any]:
    """Dependency to restrict an endpoint to model administrators"""
    if not is_model_admin(user_data):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions"
        )
    return user_data


def get_model_store(request: Request):
    """Model definition store owned by the application"""
    return request.app.state.model_store


def get_engine(request: Request) -> Engine:
    """SQLAlchemy engine for physical model tables"""
    return request.app.state.engine


def get_registry(request: Request):
    """Registry of models with mounted CRUD routes"""
    return request.app.state.registry
