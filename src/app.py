"""Storefront checkout FastAPI application.

Backend-for-frontend server: owns the shopper's cart, drives checkout
against the storefront REST backend and settles payment through the
configured gateway. Every request runs inside the ordering domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

import asyncio
from contextlib import asynccontextmanager
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from ordering.domain import ordering
from ordering.utils.logging import add_context, clear_context, configure_logging
from payments.gateway import get_gateway

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the environment ("production" switches logs to JSON).
ordering.init()

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()

    # Start bootstrapping the gateway without holding up startup; checkout
    # reports "still loading" until it is ready.
    gateway = get_gateway()
    load_task = asyncio.ensure_future(gateway.load())
    logger.info("storefront_started", gateway=type(gateway).__name__)

    yield

    if not load_task.done():
        load_task.cancel()
    await gateway.aclose()


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Storefront Checkout API",
    description="Cart, checkout orchestration and payment settlement",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the ordering domain context and a request id for each request."""
    clear_context()
    add_context(request_id=request.headers.get("x-request-id") or uuid4().hex)
    with ordering.domain_context():
        response = await call_next(request)
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from ordering.api import cart_router, checkout_router  # noqa: E402
from payments.api import gateway_router  # noqa: E402

app.include_router(cart_router)
app.include_router(checkout_router)
app.include_router(gateway_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    gateway = get_gateway()
    return JSONResponse(
        content={
            "status": "ok",
            "domains": {
                "ordering": {"name": ordering.name},
            },
            "gateway": {
                "adapter": type(gateway).__name__,
                "state": gateway.state.value,
            },
        }
    )
