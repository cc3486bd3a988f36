from fastapi import APIRouter, Body, Depends
from sqlalchemy.engine import Engine
from app.core.dependencies import get_current_user, get_engine, get_model_store
from app.modules.models.store import ModelStore
from app.modules.records.service import RecordService
from typing import Any, Dict, List


def create_record_router(model_name: str) -> APIRouter:
    """Build the five CRUD routes for one declared model"""
    router = APIRouter(tags=[model_name])

    def get_record_service(
        store: ModelStore = Depends(get_model_store),
        engine: Engine = Depends(get_engine)
    ) -> RecordService:
        return RecordService(model_name, store, engine)

    @router.get("", response_model=List[Dict[str, Any]])
    def list_records(
        user_data: Dict = Depends(get_current_user),
        service: RecordService = Depends(get_record_service)
    ):
        """List all records, newest first"""
        return service.list_records(user_data)

    @router.get("/{record_id}", response_model=Dict[str, Any])
    def get_record(
        record_id: str,
        user_data: Dict = Depends(get_current_user),
        service: RecordService = Depends(get_record_service)
    ):
        """Get record by ID"""
        return service.get_record(user_data, record_id)

    @router.post("", response_model=Dict[str, Any], status_code=201)
    def create_record(
        payload: Dict[str, Any] = Body(...),
        user_data: Dict = Depends(get_current_user),
        service: RecordService = Depends(get_record_service)
    ):
        """Create a record (owner field is set from the token)"""
        return service.create_record(user_data, payload)

    @router.put("/{record_id}", response_model=Dict[str, Any])
    def update_record(
        record_id: str,
        payload: Dict[str, Any] = Body(...),
        user_data: Dict = Depends(get_current_user),
        service: RecordService = Depends(get_record_service)
    ):
        """Update a record (owners only when the model declares an owner field)"""
        return service.update_record(user_data, record_id, payload)

    @router.delete("/{record_id}")
    def delete_record(
        record_id: str,
        user_data: Dict = Depends(get_current_user),
        service: RecordService = Depends(get_record_service)
    ):
        """Delete a record (owners only when the model declares an owner field)"""
        return service.delete_record(user_data, record_id)

    return router
