import hashlib
import threading
import time
from supabase import Client, create_client
from app.modules.auth.schemas import LoginRequest, RegisterRequest, TokenResponse, RegisterResponse
from app.config.settings import settings
from fastapi import HTTPException
from typing import Dict, Any

# In-memory cache for get_current_user to reduce Supabase auth calls (e.g. many parallel requests with same token)
_AUTH_USER_CACHE: Dict[str, tuple] = {}
_AUTH_CACHE_TTL_SEC = 60
_AUTH_CACHE_MAX_SIZE = 500
# Endpoints resolve users from the threadpool
_AUTH_CACHE_LOCK = threading.Lock()


def clear_auth_cache() -> None:
    with _AUTH_CACHE_LOCK:
        _AUTH_USER_CACHE.clear()


def _cached_user(cache_key: str, now: float):
    with _AUTH_CACHE_LOCK:
        entry = _AUTH_USER_CACHE.get(cache_key)
        if entry is None:
            return None
        user_data, expiry = entry
        if now < expiry:
            return user_data
        _AUTH_USER_CACHE.pop(cache_key, None)
        return None


def _cache_user(cache_key: str, user_data: Dict[str, Any], now: float) -> None:
    with _AUTH_CACHE_LOCK:
        if len(_AUTH_USER_CACHE) >= _AUTH_CACHE_MAX_SIZE:
            expired = [key for key, (_, expiry) in _AUTH_USER_CACHE.items() if expiry <= now]
            for key in expired:
                del _AUTH_USER_CACHE[key]
        if len(_AUTH_USER_CACHE) < _AUTH_CACHE_MAX_SIZE:
            _AUTH_USER_CACHE[cache_key] = (user_data, now + _AUTH_CACHE_TTL_SEC)


def _evict_user(cache_key: str) -> None:
    with _AUTH_CACHE_LOCK:
        _AUTH_USER_CACHE.pop(cache_key, None)


def role_from_metadata(app_metadata: Dict[str, Any]) -> str:
    """Role stored server-side in app_metadata; users cannot modify it"""
    role = (app_metadata or {}).get("role")
    return role if isinstance(role, str) and role else settings.default_role


class AuthService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def register(self, register_data: RegisterRequest) -> RegisterResponse:
        """Register a new user using Supabase Auth. New users get the default role."""
        try:
            user_metadata = {}
            if register_data.full_name:
                user_metadata["full_name"] = register_data.full_name

            auth_response = self.supabase.auth.sign_up({
                "email": register_data.email,
                "password": register_data.password,
                "options": {
                    "data": user_metadata
                }
            })

            if not auth_response.user:
                raise HTTPException(status_code=400, detail="Failed to register user")

            return RegisterResponse(
                user_id=auth_response.user.id,
                email=auth_response.user.email or register_data.email,
                role=role_from_metadata(auth_response.user.app_metadata),
                message="User registered successfully"
            )
        except HTTPException:
            raise
        except Exception as e:
            error_message = str(e)
            if "already registered" in error_message.lower() or "already exists" in error_message.lower():
                raise HTTPException(status_code=400, detail="User already exists")
            raise HTTPException(status_code=500, detail=f"Registration failed: {error_message}")

    def login(self, login_data: LoginRequest) -> TokenResponse:
        """Authenticate user using Supabase Auth"""
        try:
            auth_response = self.supabase.auth.sign_in_with_password({
                "email": login_data.email,
                "password": login_data.password
            })

            if not auth_response.user or not auth_response.session:
                raise HTTPException(status_code=401, detail="Invalid credentials")

            return TokenResponse(
                access_token=auth_response.session.access_token,
                token_type="bearer",
                user_id=auth_response.user.id,
                email=auth_response.user.email or login_data.email,
                role=role_from_metadata(auth_response.user.app_metadata)
            )
        except HTTPException:
            raise
        except Exception as e:
            error_message = str(e)
            if "invalid" in error_message.lower() or "credentials" in error_message.lower():
                raise HTTPException(status_code=401, detail="Invalid email or password")
            raise HTTPException(status_code=500, detail=f"Login failed: {error_message}")

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Resolve a bearer token to {id, email, role}. Uses short TTL cache to reduce auth API calls."""
        try:
            cache_key = hashlib.sha256(token.encode()).hexdigest()
            now = time.monotonic()
            cached = _cached_user(cache_key, now)
            if cached is not None:
                return cached
            user_response = self.supabase.auth.get_user(jwt=token)
            if not user_response or not user_response.user:
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            user = user_response.user
            app_metadata = user.app_metadata or {}
            user_data = {
                "id": user.id,
                "email": user.email,
                "role": role_from_metadata(app_metadata),
                "user_metadata": user.user_metadata or {},
                "app_metadata": app_metadata,
            }
            _cache_user(cache_key, user_data, now)
            return user_data
        except HTTPException:
            raise
        except Exception as e:
            error_msg = str(e)
            if "JWT" in error_msg or "expired" in error_msg.lower() or "invalid" in error_msg.lower():
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            raise HTTPException(status_code=401, detail="Authentication failed")

    def logout(self, token: str) -> bool:
        """Logout user using Supabase Auth"""
        try:
            # Supabase Auth tokens are stateless JWTs; drop our cached identity as well
            _evict_user(hashlib.sha256(token.encode()).hexdigest())
            self.supabase.auth.sign_out()
            return True
        except Exception:
            return False

    def set_role(self, user_id: str, role: str) -> bool:
        """Set a user's role in app_metadata (requires service role key)"""
        try:
            service_role_key = getattr(settings, 'supabase_service_role_key', None)
            if not service_role_key:
                raise HTTPException(
                    status_code=500,
                    detail="Service role key not configured. Cannot update app_metadata."
                )

            admin_client = create_client(settings.supabase_url, service_role_key)

            response = admin_client.auth.admin.update_user_by_id(
                user_id,
                {"app_metadata": {"role": role}}
            )

            if not response.user:
                raise HTTPException(status_code=404, detail="User not found")

            # Cached identities may carry the old role
            clear_auth_cache()
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(
                status_code=500,
                detail=f"Failed to update role: {str(e)}"
            )
