# hms_core/dependencies/providers.py
"""
Collaborators handed to the services per request.

Tests override these with fakes via ``app.dependency_overrides``.
"""
import logging
from functools import lru_cache

from fastapi import HTTPException, status

from hms_core.core.config import get_settings
from hms_core.core.locks import DoctorLock, InProcessDoctorLock, RedisDoctorLock
from hms_core.core.redis import get_redis_client
from hms_core.services.payment_gateway import PaymentGateway, RazorpayGateway

logger = logging.getLogger(__name__)


@lru_cache
def get_doctor_lock() -> DoctorLock:
    """
    Redis-backed lock when Redis is reachable, otherwise a process-local one.
    """
    settings = get_settings()
    client = get_redis_client()
    if client is not None:
        return RedisDoctorLock(client, timeout=settings.doctor_lock_timeout_seconds)

    logger.warning("Using process-local doctor lock; run a single worker or configure REDIS_URL.")
    return InProcessDoctorLock(timeout=settings.doctor_lock_timeout_seconds)


@lru_cache
def get_payment_gateway() -> PaymentGateway:
    settings = get_settings()
    if not settings.razorpay_key_id or not settings.razorpay_key_secret:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Payment gateway is not configured.",
        )
    return RazorpayGateway(
        settings.razorpay_key_id,
        settings.razorpay_key_secret,
        base_url=settings.razorpay_base_url,
        timeout=settings.payment_timeout_seconds,
    )
