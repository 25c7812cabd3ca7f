"""Commerce FastAPI application.

Web server that processes commerce commands synchronously via HTTP.
Every API request runs inside the commerce domain context.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects the config overlay ("production" switches to PostgreSQL).
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from commerce.domain import commerce
from commerce.utils.logging import add_context, clear_context, configure_logging

configure_logging()
commerce.init()

# Paths served without a domain context.
_CONTEXT_FREE_PATHS = ("/health", "/docs", "/redoc", "/openapi.json")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Commerce API",
    description="Carts, orders, payments, subscriptions and renewals",
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
    """Push the commerce domain context for each API request and tag its log lines."""
    if request.url.path.startswith(_CONTEXT_FREE_PATHS):
        return await call_next(request)
    clear_context()
    add_context(
        request_id=request.headers.get("x-request-id") or uuid4().hex,
        method=request.method,
        path=request.url.path,
    )
    try:
        with commerce.domain_context():
            response = await call_next(request)
    finally:
        clear_context()
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from commerce.api import (  # noqa: E402
    cart_router,
    coupon_router,
    order_router,
    payment_router,
    pricing_option_router,
    renewal_router,
    subscription_router,
    user_router,
)

app.include_router(pricing_option_router)
app.include_router(user_router)
app.include_router(cart_router)
app.include_router(coupon_router)
app.include_router(order_router)
app.include_router(payment_router)
app.include_router(subscription_router)
app.include_router(renewal_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": {"name": commerce.name}})
