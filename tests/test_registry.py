import threading

from fastapi import APIRouter, FastAPI
from fastapi.testclient import TestClient

from app.modules.records.registry import ModelRegistry


def _counting_factory(calls):
    def factory(model_name):
        calls.append(model_name)
        router = APIRouter()

        @router.get("")
        def ping():
            return {"model": model_name}

        return router
    return factory


def _paths(app):
    return [route.path for route in app.routes]


def test_register_mounts_lowercase_route():
    app = FastAPI()
    registry = ModelRegistry(app, handler_factory=_counting_factory([]), prefix="/api")

    assert registry.register("Invoice") is True
    assert registry.is_registered("invoice")
    assert registry.is_registered("INVOICE")
    assert TestClient(app).get("/api/invoice").json() == {"model": "Invoice"}


def test_register_is_idempotent():
    calls = []
    app = FastAPI()
    registry = ModelRegistry(app, handler_factory=_counting_factory(calls))

    assert registry.register("Invoice") is True
    assert registry.register("Invoice") is False
    assert registry.register("invoice") is False

    assert calls == ["Invoice"]
    assert registry.list_registered() == ["invoice"]
    assert _paths(app).count("/api/invoice") == 1


def test_concurrent_registration_mounts_once():
    calls = []
    app = FastAPI()
    registry = ModelRegistry(app, handler_factory=_counting_factory(calls))
    barrier = threading.Barrier(8)

    def worker(name):
        barrier.wait()
        registry.register(name)

    threads = [threading.Thread(target=worker, args=("Invoice" if i % 2 else "Customer",)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(calls) == ["Customer", "Invoice"]
    assert registry.list_registered() == ["customer", "invoice"]


def test_unregistered_queries():
    registry = ModelRegistry(FastAPI())
    assert registry.is_registered("Invoice") is False
    assert registry.list_registered() == []


def test_seed_registers_every_stored_model(store, invoice_declaration):
    store.save(invoice_declaration)
    store.save(invoice_declaration.model_copy(update={"name": "Customer"}))
    app = FastAPI()
    registry = ModelRegistry(app, handler_factory=_counting_factory([]))

    assert registry.seed(store) == 2
    assert registry.seed(store) == 0
    assert registry.list_registered() == ["customer", "invoice"]


def test_registration_invalidates_openapi_cache():
    app = FastAPI()
    registry = ModelRegistry(app, handler_factory=_counting_factory([]))
    assert "/api/invoice" not in app.openapi()["paths"]

    registry.register("Invoice")

    assert "/api/invoice" in app.openapi()["paths"]
