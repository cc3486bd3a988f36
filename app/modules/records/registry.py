"""Thread-safe registry of model name -> mounted CRUD router."""
import threading
import logging
from typing import Callable, Dict, List

from fastapi import APIRouter, FastAPI

from app.modules.records.routes import create_record_router

logger = logging.getLogger(__name__)


class ModelRegistry:
    def __init__(
        self,
        app: FastAPI,
        handler_factory: Callable[[str], APIRouter] = create_record_router,
        prefix: str = "/api",
    ):
        self.app = app
        self.handler_factory = handler_factory
        self.prefix = prefix.rstrip("/")
        self._lock = threading.Lock()
        self._routers: Dict[str, APIRouter] = {}

    def route_for(self, model_name: str) -> str:
        return f"{self.prefix}/{model_name.lower()}"

    def register(self, model_name: str) -> bool:
        """Mount CRUD routes for model_name once. Returns False if already mounted."""
        key = model_name.lower()
        with self._lock:
            if key in self._routers:
                return False
            router = self.handler_factory(model_name)
            self.app.include_router(router, prefix=self.route_for(model_name))
            # Force regeneration of /openapi.json with the new routes
            self.app.openapi_schema = None
            self._routers[key] = router
        logger.info(f"Registered CRUD routes for model {model_name} at {self.route_for(model_name)}")
        return True

    def is_registered(self, model_name: str) -> bool:
        with self._lock:
            return model_name.lower() in self._routers

    def list_registered(self) -> List[str]:
        with self._lock:
            return sorted(self._routers)

    def seed(self, store) -> int:
        """Register every stored model. Returns the number newly mounted."""
        count = 0
        for declaration in store.list():
            try:
                if self.register(declaration.name):
                    count += 1
            except Exception as e:
                logger.error(f"Error registering routes for model {declaration.name}: {e}")
        return count
