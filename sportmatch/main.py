import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sportmatch.api.routes import (
    interactions,
    discover,
    matches,
    contact,
    subscription,
    billing_webhook,
    health,
)
from sportmatch.core.config import CORS_ORIGINS, LOG_LEVEL, LOG_DIR
from sportmatch.core.errors import SportMatchError
from sportmatch.core.logging_config import setup_logging

setup_logging(LOG_LEVEL, LOG_DIR)
logger = logging.getLogger(__name__)


# ============================================
# FASTAPI APP INIT
# ============================================

app = FastAPI(title="SportMatch API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type", "Stripe-Signature"],
)


# ============================================
# DOMAIN ERRORS
# ============================================

@app.exception_handler(SportMatchError)
async def sportmatch_error_handler(request: Request, exc: SportMatchError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()})


# ============================================
# REGISTER ALL ROUTERS
# ============================================

app.include_router(interactions.router)
app.include_router(discover.router)
app.include_router(matches.router)
app.include_router(contact.router)
app.include_router(subscription.router)
app.include_router(billing_webhook.router)
app.include_router(health.router)


@app.get("/")
def root():
    return {"status": "SportMatch API running"}
