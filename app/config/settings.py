from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase (auth + model definition store)
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Required for admin operations like setting a user's role

    # Physical storage for published models
    database_url: str = "sqlite:///./data.db"
    database_echo: bool = False

    # Model definition store
    model_store_backend: str = "supabase"  # supabase | file
    models_dir: str = "models"
    model_definitions_table: str = "model_definitions"

    # Access
    api_prefix: str = "/api"
    model_admin_roles: str = "Admin"
    default_role: str = "Viewer"

    # App
    app_name: str = "modelforge-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def get_model_admin_roles_list(self) -> List[str]:
        return [r.strip() for r in self.model_admin_roles.split(",") if r.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
