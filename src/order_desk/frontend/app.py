from __future__ import annotations

import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from ..config import Settings, load_settings
from ..errors import (
    AuthFailed,
    DuplicateKey,
    IdGenerationExhausted,
    OrderDeskError,
    RecordNotFound,
    StorageError,
    StorageUnavailable,
    ValidationFailed,
)
from ..logging import get_logger
from ..orderdb import (
    CustomerService,
    OrderComposer,
    OrderDatabase,
    OrderService,
    ProductService,
    SessionManager,
    UserService,
)
from .dice import next_face


LOG = get_logger("orderdb-frontend")

# Checked in order; subclasses come before their bases.
_ERROR_STATUS = (
    (ValidationFailed, 400),
    (AuthFailed, 401),
    (RecordNotFound, 404),
    (DuplicateKey, 409),
    (IdGenerationExhausted, 503),
    (StorageUnavailable, 503),
    (StorageError, 500),
)


def _status_for(exc: OrderDeskError) -> int:
    for cls, status in _ERROR_STATUS:
        if isinstance(exc, cls):
            return status
    return 500


async def _domain_error(_: Request, exc: OrderDeskError) -> JSONResponse:
    status = _status_for(exc)
    if status >= 500:
        LOG.error("Request failed: %s", exc.message)
    return JSONResponse({"detail": exc.message, "error": type(exc).__name__}, status_code=status)


async def _read_json(request: Request) -> Dict[str, Any]:
    body = await request.body()
    if not body:
        return {}
    try:
        payload = json.loads(body)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Request body must be JSON") from exc
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Request body must be a JSON object")
    return payload


def _sort_params(request: Request) -> Dict[str, Any]:
    qp = request.query_params
    direction = "desc" if (qp.get("direction") or "").lower() == "desc" else "asc"
    return {"order_by": qp.get("order_by") or None, "direction": direction}


def _entity_routes(prefix: str, service: Any) -> List[Route]:
    """CRUD + key generation routes for a catalog-style service."""

    async def list_rows(request: Request) -> JSONResponse:
        return JSONResponse({"items": service.list(**_sort_params(request))})

    async def create_row(request: Request) -> JSONResponse:
        row = service.create(await _read_json(request))
        return JSONResponse(row, status_code=201)

    async def update_row(request: Request) -> JSONResponse:
        row = service.update(request.path_params["key"], await _read_json(request))
        return JSONResponse(row)

    async def delete_row(request: Request) -> Response:
        if not service.delete(request.path_params["key"]):
            raise RecordNotFound()
        return Response(status_code=204)

    async def generate_key(request: Request) -> JSONResponse:
        payload = await _read_json(request)
        key = service.generate_key()
        return JSONResponse({"key": key, "face": next_face(payload.get("face"))})

    return [
        Route(f"{prefix}/generate-key", generate_key, methods=["POST"]),
        Route(prefix, list_rows, methods=["GET"]),
        Route(prefix, create_row, methods=["POST"]),
        Route(f"{prefix}/{{key:str}}", update_row, methods=["PUT"]),
        Route(f"{prefix}/{{key:str}}", delete_row, methods=["DELETE"]),
    ]


def create_app(
    db_path: Optional[str] = None,
    *,
    root_dir: Optional[str] = None,
    settings: Optional[Settings] = None,
    allow_origins: Optional[List[str]] = None,
) -> Starlette:
    """Create a Starlette app exposing the order DB to the UI layer."""

    settings = settings or load_settings(root_dir, db_path=db_path)
    db = OrderDatabase(settings.db_path)
    users = UserService(db, iterations=settings.password_iterations)
    products = ProductService(db)
    customers = CustomerService(db)
    orders = OrderService(db)
    session = SessionManager(db, users)

    async def health(_: Request) -> JSONResponse:
        ready = db.is_ready()
        return JSONResponse(
            {"status": "ok" if ready else "unavailable", "db_path": db.db_path},
            status_code=200 if ready else 503,
        )

    async def summary(_: Request) -> JSONResponse:
        return JSONResponse(orders.summary())

    # --- users / session ---
    async def register(request: Request) -> JSONResponse:
        return JSONResponse(users.register(await _read_json(request)), status_code=201)

    async def user_detail(request: Request) -> JSONResponse:
        row = users.get(request.path_params["user_id"])
        if row is None:
            raise RecordNotFound("User not found.")
        return JSONResponse(row)

    async def update_user(request: Request) -> JSONResponse:
        return JSONResponse(users.update(request.path_params["user_id"], await _read_json(request)))

    async def login(request: Request) -> JSONResponse:
        payload = await _read_json(request)
        user = session.login(str(payload.get("username") or ""), str(payload.get("password") or ""))
        return JSONResponse(user.to_dict())

    async def logout(_: Request) -> Response:
        session.logout()
        return Response(status_code=204)

    async def current_session(_: Request) -> JSONResponse:
        user = session.current_user()
        return JSONResponse({"user": user.to_dict() if user else None})

    # --- orders ---
    async def list_orders(_: Request) -> JSONResponse:
        return JSONResponse({"items": orders.list_orders()})

    async def order_form(_: Request) -> JSONResponse:
        composer = OrderComposer(
            db,
            products,
            customers,
            init_attempts=settings.init_attempts,
            init_delay=settings.init_delay,
        )
        return JSONResponse(composer.load_choices())

    async def create_order(request: Request) -> JSONResponse:
        payload = await _read_json(request)
        items = payload.get("items") or []
        if not isinstance(items, list):
            raise ValidationFailed("items must be a list")
        composer = OrderComposer(db, products, customers)
        composer.set_header(payload.get("date"), payload.get("customer_id"))
        for item in items:
            if not isinstance(item, dict):
                raise ValidationFailed("Each item needs product_number and qty.")
            composer.add_line_item(item.get("product_number"), item.get("qty"))
        order_number = composer.commit()
        return JSONResponse(orders.require_order(order_number), status_code=201)

    async def order_detail(request: Request) -> JSONResponse:
        return JSONResponse(orders.require_order(request.path_params["order_number"]))

    async def delete_order(request: Request) -> Response:
        if not orders.delete_order(request.path_params["order_number"]):
            raise RecordNotFound("Order not found.")
        return Response(status_code=204)

    routes = [
        Route("/api/health", health, methods=["GET"]),
        Route("/api/summary", summary, methods=["GET"]),
        *_entity_routes("/api/products", products),
        *_entity_routes("/api/customers", customers),
        Route("/api/users", register, methods=["POST"]),
        Route("/api/users/{user_id:int}", user_detail, methods=["GET"]),
        Route("/api/users/{user_id:int}", update_user, methods=["PUT"]),
        Route("/api/session", current_session, methods=["GET"]),
        Route("/api/session/login", login, methods=["POST"]),
        Route("/api/session/logout", logout, methods=["POST"]),
        Route("/api/orders", list_orders, methods=["GET"]),
        Route("/api/orders", create_order, methods=["POST"]),
        Route("/api/orders/form", order_form, methods=["GET"]),
        Route("/api/orders/{order_number:int}", order_detail, methods=["GET"]),
        Route("/api/orders/{order_number:int}", delete_order, methods=["DELETE"]),
    ]

    @asynccontextmanager
    async def lifespan(_: Starlette) -> AsyncIterator[None]:
        yield
        db.close()

    app = Starlette(
        debug=False,
        routes=routes,
        exception_handlers={OrderDeskError: _domain_error},
        lifespan=lifespan,
    )
    app.state.db = db

    origins = allow_origins or ["http://localhost:8081", "http://127.0.0.1:8081"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if "*" in origins else origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    LOG.info("Order DB API configured for %s", db.db_path)
    return app


__all__ = ["create_app"]
