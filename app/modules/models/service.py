import logging
from fastapi import HTTPException, status
from sqlalchemy.engine import Engine
from typing import List

from app.modules.models.materializer import MaterializationError, SchemaMaterializer
from app.modules.models.schemas import ModelDeclaration
from app.modules.models.store import ModelStore, ModelStoreError, find_route_conflict
from app.modules.records.registry import ModelRegistry

logger = logging.getLogger(__name__)


class ModelService:
    def __init__(self, store: ModelStore, engine: Engine, registry: ModelRegistry):
        self.store = store
        self.materializer = SchemaMaterializer(engine)
        self.registry = registry

    def list_models(self) -> List[ModelDeclaration]:
        """List all stored declarations"""
        try:
            return self.store.list()
        except ModelStoreError:
            raise HTTPException(status_code=500, detail="Storage operation failed")

    def get_model(self, model_name: str) -> ModelDeclaration:
        """Get declaration by name"""
        try:
            declaration = self.store.load(model_name)
        except ModelStoreError:
            raise HTTPException(status_code=500, detail="Storage operation failed")
        if declaration is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Model not found")
        return declaration

    def save_model(self, declaration: ModelDeclaration) -> ModelDeclaration:
        """Create or overwrite a declaration. Names may not differ from an existing one only by case."""
        try:
            existing = find_route_conflict(self.store, declaration)
            if existing is not None:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"Model {existing.name} already uses route /{existing.route_segment}"
                )
            self.store.save(declaration)
        except ModelStoreError:
            raise HTTPException(status_code=500, detail="Storage operation failed")
        return declaration

    def publish_model(self, model_name: str) -> ModelDeclaration:
        """Create the model's table and mount its CRUD routes"""
        declaration = self.get_model(model_name)
        try:
            self.materializer.materialize(declaration)
        except MaterializationError as e:
            raise HTTPException(status_code=500, detail=f"Failed to publish model: {e}")
        self.registry.register(declaration.name)
        logger.info(f"Published model {declaration.name}")
        return declaration

    def delete_model(self, model_name: str) -> None:
        """Delete a declaration. Mounted routes stay and answer 404 until it is saved again."""
        try:
            self.store.delete(model_name)
        except ModelStoreError:
            raise HTTPException(status_code=500, detail="Storage operation failed")
