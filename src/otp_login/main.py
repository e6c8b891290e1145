"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from otp_login.api.functions import (
    callable_error_handler,
    router as functions_router,
    validation_error_handler,
)
from otp_login.config import settings
from otp_login.dependencies import build_services
from otp_login.errors import CallableError

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
# httpx logs every outbound request at INFO; keep provider calls out of the log sink
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle hook."""
    logger.info("Starting %s …", settings.app_name)
    app.state.services = await build_services(settings)
    logger.info("Services initialised")
    yield
    logger.info("Shutting down %s …", settings.app_name)


app = FastAPI(
    title=settings.app_name,
    description="Passwordless email-OTP login functions",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(functions_router)
app.add_exception_handler(CallableError, callable_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)


@app.get("/health")
async def health_check():
    """Simple liveness probe."""
    return {"status": "healthy", "app": settings.app_name}


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    uvicorn.run("otp_login.main:app", host="0.0.0.0", port=8000, log_level="info")
