# hms_core/api/v1/endpoints/payments.py
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from hms_core.core.config import Settings, get_settings
from hms_core.core.errors import InvalidRequestError
from hms_core.dependencies.authz import CurrentActor, get_current_actor
from hms_core.schemas.appointment import PaymentVerifyRequest, PaymentVerifyResponse
from hms_core.services.payment_gateway import verify_payment_signature

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/verify", response_model=PaymentVerifyResponse)
def verify_payment(
    payload: PaymentVerifyRequest,
    settings: Settings = Depends(get_settings),
    actor: CurrentActor = Depends(get_current_actor),
) -> PaymentVerifyResponse:
    """
    Confirm that a checkout callback was signed by the gateway with our key secret.
    """
    if not settings.razorpay_key_secret:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Payment gateway is not configured.",
        )

    if not verify_payment_signature(
        payload.order_id,
        payload.payment_id,
        payload.signature,
        settings.razorpay_key_secret,
    ):
        logger.warning("Payment signature mismatch order=%s payment=%s", payload.order_id, payload.payment_id)
        raise InvalidRequestError("Invalid payment signature")

    return PaymentVerifyResponse(verified=True, order_id=payload.order_id, payment_id=payload.payment_id)
