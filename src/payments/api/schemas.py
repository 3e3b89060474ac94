"""Pydantic request/response schemas for the Payments API.

These are external contracts (anti-corruption layer) — separate from the
gateway port's own types.
"""

from typing import Literal

from pydantic import BaseModel


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class CancelPaymentRequest(BaseModel):
    reference: str

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "reference": "ord-001",
                }
            ]
        }
    }


class ConfigureGatewayRequest(BaseModel):
    auto_outcome: Literal["succeed", "cancel"] | None = None
    fail_open: bool = False


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str


class PaymentSignalResponse(BaseModel):
    reference: str
    accepted: bool


class GatewayStatusResponse(BaseModel):
    gateway: str
    state: str
    failure_reason: str | None = None


class GatewayConfigResponse(BaseModel):
    gateway: str
    auto_outcome: str | None = None
    fail_open: bool
