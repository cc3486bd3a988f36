"""Durable keepers of model declarations, keyed by name."""
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError
from supabase import Client

from app.config.permissions_config import is_valid_identifier
from app.modules.models.schemas import ModelDeclaration

logger = logging.getLogger(__name__)


class ModelStoreError(Exception):
    """Raised when the backing store cannot be read or written"""


class ModelStore(ABC):
    @abstractmethod
    def save(self, declaration: ModelDeclaration) -> None:
        ...

    @abstractmethod
    def load(self, name: str) -> Optional[ModelDeclaration]:
        ...

    @abstractmethod
    def list(self) -> List[ModelDeclaration]:
        ...

    @abstractmethod
    def delete(self, name: str) -> None:
        ...

    def find_by_route(self, route_segment: str) -> Optional[ModelDeclaration]:
        """Declaration served at /<route_segment>, whatever the case of its name"""
        for declaration in self.list():
            if declaration.route_segment == route_segment.lower():
                return declaration
        return None


def find_route_conflict(store: ModelStore, declaration: ModelDeclaration) -> Optional[ModelDeclaration]:
    """Another stored declaration that would share declaration's route, or None"""
    for existing in store.list():
        if existing.name != declaration.name and existing.route_segment == declaration.route_segment:
            return existing
    return None


class SupabaseModelStore(ModelStore):
    def __init__(self, supabase: Optional[Client] = None, table: str = "model_definitions"):
        self._supabase = supabase
        self.table = table

    @property
    def supabase(self) -> Client:
        # Resolved on first use so the app can start before Supabase is reachable
        if self._supabase is None:
            from app.database.supabase_client import SupabaseClient
            self._supabase = SupabaseClient.get_service_client()
        return self._supabase

    def save(self, declaration: ModelDeclaration) -> None:
        """Create or overwrite the declaration row for declaration.name"""
        try:
            self.supabase.table(self.table).upsert({
                "name": declaration.name,
                "table_name": declaration.physical_table,
                "definition": declaration.model_dump(mode="json"),
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }, on_conflict="name").execute()
        except Exception as e:
            logger.error(f"Error saving model definition {declaration.name}: {e}")
            raise ModelStoreError(str(e)) from e
        logger.info(f"Saved model definition: {declaration.name}")

    def load(self, name: str) -> Optional[ModelDeclaration]:
        if not is_valid_identifier(name):
            return None
        try:
            result = self.supabase.table(self.table)\
                .select("definition")\
                .eq("name", name)\
                .limit(1)\
                .execute()
        except Exception as e:
            logger.error(f"Error loading model definition {name}: {e}")
            raise ModelStoreError(str(e)) from e
        if not result.data:
            return None
        return _parse_definition(name, result.data[0].get("definition"))

    def list(self) -> List[ModelDeclaration]:
        try:
            result = self.supabase.table(self.table)\
                .select("name, definition")\
                .order("name")\
                .execute()
        except Exception as e:
            logger.error(f"Error listing model definitions: {e}")
            raise ModelStoreError(str(e)) from e
        declarations = []
        for row in result.data or []:
            declaration = _parse_definition(row.get("name"), row.get("definition"))
            if declaration:
                declarations.append(declaration)
        return declarations

    def delete(self, name: str) -> None:
        if not is_valid_identifier(name):
            return
        try:
            self.supabase.table(self.table)\
                .delete()\
                .eq("name", name)\
                .execute()
        except Exception as e:
            logger.error(f"Error deleting model definition {name}: {e}")
            raise ModelStoreError(str(e)) from e
        logger.info(f"Deleted model definition: {name}")


class FileModelStore(ModelStore):
    """One <name>.json file per declaration under a directory."""

    def __init__(self, directory):
        self.directory = Path(directory)

    def _path(self, name: str) -> Path:
        return self.directory / f"{name}.json"

    def save(self, declaration: ModelDeclaration) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(declaration.model_dump(mode="json"), indent=2)
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix=".", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_path, self._path(declaration.name))
        except OSError as e:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise ModelStoreError(str(e)) from e
        logger.info(f"Saved model definition: {declaration.name}")

    def load(self, name: str) -> Optional[ModelDeclaration]:
        if not is_valid_identifier(name):
            return None
        path = self._path(name)
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise ModelStoreError(str(e)) from e
        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.warning(f"Skipping unreadable model definition {path}: {e}")
            return None
        return _parse_definition(name, data)

    def list(self) -> List[ModelDeclaration]:
        if not self.directory.exists():
            return []
        declarations = []
        for path in sorted(self.directory.glob("*.json")):
            declaration = self.load(path.stem)
            if declaration:
                declarations.append(declaration)
        return declarations

    def delete(self, name: str) -> None:
        if not is_valid_identifier(name):
            return
        try:
            self._path(name).unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise ModelStoreError(str(e)) from e
        logger.info(f"Deleted model definition: {name}")


def _parse_definition(name, data) -> Optional[ModelDeclaration]:
    if not data:
        return None
    try:
        return ModelDeclaration.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Skipping invalid model definition {name}: {e}")
        return None


def build_model_store(settings) -> ModelStore:
    """Model store selected by MODEL_STORE_BACKEND"""
    if settings.model_store_backend == "file":
        return FileModelStore(settings.models_dir)
    if settings.model_store_backend == "supabase":
        return SupabaseModelStore(table=settings.model_definitions_table)
    raise ValueError(f"Unknown model store backend: {settings.model_store_backend}")
