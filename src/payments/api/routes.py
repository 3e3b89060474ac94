"""FastAPI routes for the Payments domain — gateway signals and status."""

import json
import os

import structlog
from fastapi import APIRouter, Header, HTTPException, Request

from payments.api.schemas import (
    CancelPaymentRequest,
    ConfigureGatewayRequest,
    GatewayConfigResponse,
    GatewayStatusResponse,
    PaymentSignalResponse,
    StatusResponse,
)
from payments.gateway import get_gateway
from payments.gateway.fake_adapter import FakeGateway
from payments.gateway.port import OutcomeStatus

logger = structlog.get_logger(__name__)

_OUTCOMES = {
    "succeed": OutcomeStatus.SUCCEEDED,
    "cancel": OutcomeStatus.CANCELLED,
}

# ---------------------------------------------------------------------------
# Gateway Router
# ---------------------------------------------------------------------------
gateway_router = APIRouter(prefix="/payments/gateway", tags=["payments"])


@gateway_router.get("", response_model=GatewayStatusResponse)
async def gateway_status() -> GatewayStatusResponse:
    gateway = get_gateway()
    return GatewayStatusResponse(
        gateway=type(gateway).__name__,
        state=gateway.state.value,
        failure_reason=gateway.failure_reason,
    )


@gateway_router.get("/callback", response_model=PaymentSignalResponse)
async def payment_callback(reference: str, trxref: str | None = None) -> PaymentSignalResponse:
    """The shopper came back from the payment surface after paying."""
    accepted = get_gateway().complete(reference, provider_reference=trxref or reference)
    return PaymentSignalResponse(reference=reference, accepted=accepted)


@gateway_router.post("/cancel", response_model=PaymentSignalResponse)
async def payment_cancelled(body: CancelPaymentRequest) -> PaymentSignalResponse:
    """The shopper closed the payment surface without paying."""
    accepted = get_gateway().cancel(body.reference)
    return PaymentSignalResponse(reference=body.reference, accepted=accepted)


@gateway_router.post("/webhook", response_model=StatusResponse)
async def payment_webhook(
    request: Request,
    x_paystack_signature: str = Header(default=""),
) -> StatusResponse:
    """Provider-to-server notification. Only ``charge.success`` is acted on."""
    gateway = get_gateway()
    payload = await request.body()
    if not gateway.verify_webhook_signature(payload, x_paystack_signature):
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    try:
        event = json.loads(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Malformed webhook payload") from exc

    if event.get("event") != "charge.success":
        logger.info("webhook_ignored", webhook_event=event.get("event"))
        return StatusResponse(status="ignored")

    reference = (event.get("data") or {}).get("reference")
    if not reference:
        raise HTTPException(status_code=400, detail="Webhook payload has no reference")

    accepted = gateway.complete(reference, provider_reference=reference)
    return StatusResponse(status="processed" if accepted else "ignored")


@gateway_router.post("/configure", response_model=GatewayConfigResponse)
async def configure_gateway(body: ConfigureGatewayRequest) -> GatewayConfigResponse:
    """Configure the FakeGateway behavior (non-production only).

    This endpoint is only available when PROTEAN_ENV is not 'production'.
    It lets manual API testing pick what happens once a payment opens.
    """
    if os.environ.get("PROTEAN_ENV") == "production":
        raise HTTPException(status_code=403, detail="Gateway configuration not available in production")

    gateway = get_gateway()
    if not isinstance(gateway, FakeGateway):
        raise HTTPException(status_code=400, detail="Gateway configuration only available for FakeGateway")

    gateway.configure(
        auto_outcome=_OUTCOMES.get(body.auto_outcome) if body.auto_outcome else None,
        fail_open=body.fail_open,
    )
    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        auto_outcome=body.auto_outcome,
        fail_open=gateway.fail_open,
    )
