# apps/storefront/main.py
import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from apps.storefront.config.settings import settings
from apps.storefront.flags import enabled
from apps.storefront.middleware.errors import install_error_handlers
from apps.storefront.middleware.request_logging import install_request_logging
from apps.storefront.routes.account import router as account_router
from apps.storefront.routes.admin import router as admin_router
from apps.storefront.routes.cart import router as cart_router
from apps.storefront.routes.catalog import router as catalog_router
from apps.storefront.routes.checkout import router as checkout_router
from apps.storefront.routes.deps import get_gateway, get_store
from apps.storefront.routes.health import router as health_router
from apps.storefront.routes.loyalty import router as loyalty_router
from apps.storefront.routes.reviews import router as reviews_router
from apps.storefront.routes.subscriptions import router as subscriptions_router
from apps.storefront.services.jobs import schedule_keepalive, schedule_subscription_sweep
from apps.storefront.services.loyalty.loyalty_service import LoyaltyService
from apps.storefront.services.subscriptions.subscription_service import SubscriptionService

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger("picklish.main")

app = FastAPI(
    title="Picklish Storefront",
    version=settings.STORE_VERSION,
    description="Catalog, cart, checkout, loyalty and subscriptions for the Picklish store",
)

# -------------------------------------------------------------------
# Error handling (stable envelopes, no stack leaks)
# -------------------------------------------------------------------
install_error_handlers(app)
install_request_logging(app)

# -------------------------------------------------------------------
# CORS (storefront origins only)
# -------------------------------------------------------------------
if settings.CORS_MODE == "allowlist":
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

# -------------------------------------------------------------------
# Routers
# -------------------------------------------------------------------
app.include_router(health_router)
app.include_router(catalog_router, prefix="/catalog")
app.include_router(cart_router, prefix="/cart")
app.include_router(checkout_router, prefix="/checkout")
app.include_router(loyalty_router, prefix="/loyalty")
app.include_router(subscriptions_router, prefix="/subscriptions")
app.include_router(reviews_router, prefix="/reviews")
app.include_router(account_router, prefix="/account")
app.include_router(admin_router, prefix="/admin")


# -------------------------------------------------------------------
# Root
# -------------------------------------------------------------------
@app.get("/")
async def root():
    return {
        "status": f"{settings.STORE_NAME} Online",
        "environment": settings.ENVIRONMENT,
        "routes": [
            "/health",
            "/catalog",
            "/cart",
            "/checkout",
            "/loyalty",
            "/subscriptions",
            "/reviews",
            "/account",
            "/admin",
        ],
    }


# -------------------------------------------------------------------
# Background jobs
# -------------------------------------------------------------------
_scheduler: Optional[AsyncIOScheduler] = None


async def run_subscription_sweep() -> dict:
    store = get_store()
    service = SubscriptionService(
        store,
        loyalty=LoyaltyService(store),
        gateway=get_gateway(),
        currency=settings.CURRENCY,
        store_name=settings.STORE_NAME,
    )
    return await service.process_due()


@app.on_event("startup")
async def startup_event():
    global _scheduler
    sweep_on = enabled("FEATURE_SUBSCRIPTION_SCHEDULER")
    keepalive_on = enabled("FEATURE_KEEPALIVE") and bool(settings.KEEPALIVE_URLS)
    if not (sweep_on or keepalive_on):
        log.info("%s starting, no background jobs", settings.STORE_NAME)
        return

    _scheduler = AsyncIOScheduler()
    if sweep_on:
        schedule_subscription_sweep(_scheduler, run_subscription_sweep, settings.SUBSCRIPTION_SWEEP_HOURS)
    if keepalive_on:
        schedule_keepalive(_scheduler, settings.KEEPALIVE_URLS, settings.KEEPALIVE_INTERVAL_SECONDS)
    _scheduler.start()
    log.info("%s starting with background jobs", settings.STORE_NAME)


@app.on_event("shutdown")
async def shutdown_event():
    global _scheduler
    if _scheduler is not None:
        _scheduler.shutdown(wait=False)
        _scheduler = None
