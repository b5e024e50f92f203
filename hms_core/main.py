import logging

from fastapi import FastAPI

from hms_core.api.v1.router import api_router
from hms_core.core.config import get_settings
from hms_core.core.errors import ServiceError, service_error_handler
from hms_core.core.redis import is_redis_available

settings = get_settings()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


configure_logging(settings.log_level)

app = FastAPI(
    title="Hospital Booking & Dispensing Service",
)

app.add_exception_handler(ServiceError, service_error_handler)


@app.get("/health", tags=["health"])
async def root_health() -> dict:
    """
    Global health check endpoint.
    """
    return {"status": "ok", "redis": is_redis_available()}


# Mount versioned API router
app.include_router(api_router, prefix=settings.api_v1_prefix)
