import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from app.config.permissions_config import CREATED_AT_COLUMN, ID_COLUMN, UPDATED_AT_COLUMN
from app.modules.models.schemas import ModelDeclaration, Operation
from app.modules.models.store import ModelStore, ModelStoreError
from app.modules.records import statements
from app.modules.records.permissions import allow
from app.modules.records.schemas import serialize_record, strip_reserved, validate_payload

logger = logging.getLogger(__name__)


class RecordService:
    """CRUD over the physical table of one declared model."""

    def __init__(self, model_name: str, store: ModelStore, engine: Engine):
        self.model_name = model_name
        self.store = store
        self.engine = engine

    def _load_declaration(self) -> ModelDeclaration:
        # Reloaded on every call so declaration edits apply immediately
        try:
            declaration = self.store.load(self.model_name)
            if declaration is None:
                # Same route, different spelling
                declaration = self.store.find_by_route(self.model_name)
        except ModelStoreError as e:
            logger.error(f"Model store failure loading {self.model_name}: {e}")
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Storage operation failed")
        if declaration is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Model not found")
        return declaration

    def _check(self, actor: Dict[str, Any], operation: Operation, declaration: ModelDeclaration,
               record: Optional[Dict[str, Any]] = None) -> None:
        if not allow(
            actor.get("role"),
            operation,
            declaration.policy,
            owner_field=declaration.owner_field,
            record=record,
            actor_id=actor.get("id"),
        ):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")

    def _storage_error(self, action: str, e: Exception) -> HTTPException:
        logger.error(f"Storage failure during {action} on {self.model_name}: {e}", exc_info=True)
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Storage operation failed")

    @staticmethod
    def _fetch(conn: Connection, table, record_id: str) -> Optional[Dict[str, Any]]:
        row = conn.execute(statements.select_by_id(table, record_id)).mappings().first()
        return dict(row) if row else None

    def list_records(self, actor: Dict[str, Any]) -> List[Dict[str, Any]]:
        """All records, newest first"""
        declaration = self._load_declaration()
        self._check(actor, Operation.READ, declaration)
        table = statements.build_table(declaration)
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(statements.select_all(table)).mappings().all()
        except SQLAlchemyError as e:
            raise self._storage_error("list", e)
        return [serialize_record(row) for row in rows]

    def get_record(self, actor: Dict[str, Any], record_id: str) -> Dict[str, Any]:
        declaration = self._load_declaration()
        self._check(actor, Operation.READ, declaration)
        table = statements.build_table(declaration)
        try:
            with self.engine.connect() as conn:
                record = self._fetch(conn, table, record_id)
        except SQLAlchemyError as e:
            raise self._storage_error("get", e)
        if record is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Record not found")
        return serialize_record(record)

    def create_record(self, actor: Dict[str, Any], payload: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a record; the owner field always comes from the acting user"""
        declaration = self._load_declaration()
        self._check(actor, Operation.CREATE, declaration)
        values = validate_payload(declaration, strip_reserved(declaration, payload))

        now = datetime.now(timezone.utc)
        record_id = str(uuid.uuid4())
        values[ID_COLUMN] = record_id
        values[CREATED_AT_COLUMN] = now
        values[UPDATED_AT_COLUMN] = now
        if declaration.owner_field:
            values[declaration.owner_field] = actor["id"]

        table = statements.build_table(declaration)
        try:
            with self.engine.begin() as conn:
                conn.execute(statements.insert_record(table, values))
                record = self._fetch(conn, table, record_id)
        except SQLAlchemyError as e:
            raise self._storage_error("create", e)
        logger.info(f"Created {declaration.name} record {record_id}")
        return serialize_record(record)

    def update_record(self, actor: Dict[str, Any], record_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        declaration = self._load_declaration()
        table = statements.build_table(declaration)
        try:
            # Ownership check and write share one transaction
            with self.engine.begin() as conn:
                existing = self._fetch(conn, table, record_id)
                if existing is None:
                    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Record not found")
                self._check(actor, Operation.UPDATE, declaration, record=existing)
                values = validate_payload(declaration, strip_reserved(declaration, payload), partial=True)
                values[UPDATED_AT_COLUMN] = datetime.now(timezone.utc)
                conn.execute(statements.update_record(table, record_id, values))
                record = self._fetch(conn, table, record_id)
        except SQLAlchemyError as e:
            raise self._storage_error("update", e)
        logger.info(f"Updated {declaration.name} record {record_id}")
        return serialize_record(record)

    def delete_record(self, actor: Dict[str, Any], record_id: str) -> Dict[str, str]:
        declaration = self._load_declaration()
        table = statements.build_table(declaration)
        try:
            with self.engine.begin() as conn:
                existing = self._fetch(conn, table, record_id)
                if existing is None:
                    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Record not found")
                self._check(actor, Operation.DELETE, declaration, record=existing)
                conn.execute(statements.delete_record(table, record_id))
        except SQLAlchemyError as e:
            raise self._storage_error("delete", e)
        logger.info(f"Deleted {declaration.name} record {record_id}")
        return {"message": "Record deleted successfully"}
