from supabase import create_client, Client
from app.config import settings


class SupabaseClient:
    """Process-wide Supabase clients for Auth and the model_definitions table."""
    _client: Client = None
    _service_client: Client = None

    @classmethod
    def _create(cls, key: str) -> Client:
        if not settings.supabase_url or not key:
            raise RuntimeError("SUPABASE_URL and a Supabase key must be configured")
        return create_client(settings.supabase_url, key)

    @classmethod
    def get_client(cls) -> Client:
        if cls._client is None:
            cls._client = cls._create(settings.supabase_key)
        return cls._client

    @classmethod
    def get_service_client(cls) -> Client:
        """Service-role client; writes model definitions and app_metadata roles past RLS."""
        if not settings.supabase_service_role_key:
            return cls.get_client()
        if cls._service_client is None:
            cls._service_client = cls._create(settings.supabase_service_role_key)
        return cls._service_client


def get_supabase() -> Client:
    return SupabaseClient.get_client()
