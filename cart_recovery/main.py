# cart_recovery/main.py
from fastapi import FastAPI, Response

from cart_recovery.api.error_handlers import register_exception_handlers
from cart_recovery.api.routers import abandoned_carts, analytics
from cart_recovery.core.config import settings
from cart_recovery.core.logging import setup_logging
from cart_recovery.core.metrics import export_metrics
from cart_recovery.middleware import ObservabilityMiddleware

# --- Models registration (needed for Alembic and create_all) ---
import cart_recovery.models.user            # noqa: F401
import cart_recovery.models.product         # noqa: F401
import cart_recovery.models.cart            # noqa: F401
import cart_recovery.models.abandoned_cart  # noqa: F401

setup_logging()

TAGS_METADATA = [
    {
        "name": "abandoned-carts",
        "description": "Abandonment tracking, recovery and the reminder email dispatcher.",
    },
    {"name": "analytics", "description": "Dashboard aggregates for abandoned carts."},
]

app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    description=(
        "Abandoned-cart recovery for the Opshop marketplace.\n\n"
        "- **Tracking**: Snapshot a user's cart when they leave without checking out.\n"
        "- **Reminders**: Three timed emails at +1h, +24h and +72h.\n"
        "- **Recovery**: Checkout closes the episode and cancels pending reminders.\n\n"
        f"Every endpoint requires the `{settings.INTERNAL_API_KEY_HEADER}` header."
    ),
    openapi_tags=TAGS_METADATA,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# --- Middlewares ---
app.add_middleware(ObservabilityMiddleware)

# --- Error handlers ---
register_exception_handlers(app)

# --- Routers ---
app.include_router(abandoned_carts.router, prefix=settings.API_V1_STR)
app.include_router(analytics.router, prefix=settings.API_V1_STR)


@app.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    payload, content_type = export_metrics()
    return Response(content=payload, media_type=content_type)


# --- Root endpoint ---
@app.get("/", include_in_schema=False)
def root():
    return {"status": "ok", "docs_url": "/docs", "redoc_url": "/redoc"}
