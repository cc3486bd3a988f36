from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from app.config import settings


class DatabaseEngine:
    _engine: Engine = None

    @classmethod
    def get_engine(cls) -> Engine:
        if cls._engine is None:
            url = settings.database_url
            # Normalize Heroku/Supabase style postgres:// URLs
            if url.startswith("postgres://"):
                url = url.replace("postgres://", "postgresql+psycopg://", 1)
            elif url.startswith("postgresql://"):
                url = url.replace("postgresql://", "postgresql+psycopg://", 1)
            connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
            cls._engine = create_engine(
                url,
                echo=settings.database_echo,
                pool_pre_ping=True,
                connect_args=connect_args,
            )
        return cls._engine


def get_engine() -> Engine:
    return DatabaseEngine.get_engine()
