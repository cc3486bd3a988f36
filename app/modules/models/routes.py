from fastapi import APIRouter, Depends
from sqlalchemy.engine import Engine
from app.modules.models.schemas import ModelDeclaration, ModelSaveResponse, ModelPublishResponse
from app.modules.models.service import ModelService
from app.modules.models.store import ModelStore
from app.modules.records.registry import ModelRegistry
from app.core.dependencies import (
    get_current_user,
    get_engine,
    get_model_store,
    get_registry,
    require_model_admin,
)
from typing import List, Dict

router = APIRouter(prefix="/models", tags=["models"])


def get_model_service(
    store: ModelStore = Depends(get_model_store),
    engine: Engine = Depends(get_engine),
    registry: ModelRegistry = Depends(get_registry)
) -> ModelService:
    return ModelService(store, engine, registry)


@router.get("", response_model=List[ModelDeclaration])
def list_models(
    user_data: Dict = Depends(get_current_user),
    service: ModelService = Depends(get_model_service)
):
    """List all model declarations"""
    return service.list_models()


@router.get("/registered", response_model=List[str])
def list_registered_models(
    user_data: Dict = Depends(get_current_user),
    registry: ModelRegistry = Depends(get_registry)
):
    """Names of models with live CRUD routes"""
    return registry.list_registered()


@router.get("/{model_name}", response_model=ModelDeclaration)
def get_model(
    model_name: str,
    user_data: Dict = Depends(get_current_user),
    service: ModelService = Depends(get_model_service)
):
    """Get a model declaration by name"""
    return service.get_model(model_name)


@router.post("", response_model=ModelSaveResponse)
def save_model(
    declaration: ModelDeclaration,
    user_data: Dict = Depends(require_model_admin),
    service: ModelService = Depends(get_model_service)
):
    """Create or update a model declaration (admin only)"""
    saved = service.save_model(declaration)
    return {"message": "Model saved successfully", "model": saved}


@router.post("/{model_name}/publish", response_model=ModelPublishResponse)
def publish_model(
    model_name: str,
    user_data: Dict = Depends(require_model_admin),
    service: ModelService = Depends(get_model_service),
    registry: ModelRegistry = Depends(get_registry)
):
    """Publish a model: create its table and register its CRUD routes (admin only)"""
    declaration = service.publish_model(model_name)
    return {
        "message": "Model published successfully",
        "model": declaration,
        "route": registry.route_for(declaration.name),
    }


@router.delete("/{model_name}")
def delete_model(
    model_name: str,
    user_data: Dict = Depends(require_model_admin),
    service: ModelService = Depends(get_model_service)
):
    """Delete a model declaration (admin only)"""
    service.delete_model(model_name)
    return {"message": "Model deleted successfully"}
