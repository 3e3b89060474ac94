"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands and checkout types.
"""

from typing import Literal

from pydantic import BaseModel, Field

from ordering.checkout.fulfillment import DEFAULT_COUNTRY


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AmountsSchema(BaseModel):
    subtotal: str
    delivery_fee: str
    tax: str
    grand_total: str


class CartLineSchema(BaseModel):
    product_id: str
    name: str | None = None
    unit_price: float
    quantity: int
    line_total: str


class ContactSchema(BaseModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""


class AddressSchema(BaseModel):
    line1: str = ""
    city: str = ""
    region: str = ""
    postal_code: str = ""
    country: str = DEFAULT_COUNTRY
    phone: str = ""
    selected_address_id: str | None = None
    save_as_new: bool = True
    make_default: bool = False


class TransferInstructionsSchema(BaseModel):
    order_id: str
    bank_name: str
    account_name: str
    account_number: str
    bank_code: str
    amount: str
    narration: str


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class CreateCartRequest(BaseModel):
    customer_id: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "cust-001",
                }
            ]
        }
    }


class AddToCartRequest(BaseModel):
    product_id: str
    name: str
    unit_price: float = Field(ge=0)
    quantity: int = Field(ge=1, default=1)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "prod-jollof",
                    "name": "Jollof Rice",
                    "unit_price": 5000,
                    "quantity": 2,
                }
            ]
        }
    }


class UpdateCartQuantityRequest(BaseModel):
    new_quantity: int = Field(ge=0)


# ---------------------------------------------------------------------------
# Checkout Request Schemas
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    contact: ContactSchema
    fulfillment_mode: Literal["delivery", "pickup"] = "delivery"
    address: AddressSchema | None = None
    pickup_time: str | None = None
    payment_method: Literal["card", "transfer"] = "card"
    notes: str = ""

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "contact": {
                        "first_name": "Ada",
                        "last_name": "Obi",
                        "email": "ada@example.com",
                        "phone": "08012345678",
                    },
                    "fulfillment_mode": "pickup",
                    "pickup_time": "asap",
                    "payment_method": "card",
                    "notes": "Extra pepper",
                }
            ]
        }
    }


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class CartIdResponse(BaseModel):
    cart_id: str


class StatusResponse(BaseModel):
    status: str = "ok"


class CartResponse(BaseModel):
    cart_id: str
    customer_id: str | None = None
    lines: list[CartLineSchema]
    item_count: int
    amounts: AmountsSchema


class CheckoutStatusResponse(BaseModel):
    cart_id: str
    checkout_id: str
    status: str
    order_id: str | None = None
    payment_reference: str | None = None
    payment_url: str | None = None
    failure_reason: str | None = None
    message: str | None = None
    redirect_to: str | None = None
    amounts: AmountsSchema | None = None
    transfer: TransferInstructionsSchema | None = None
    saved_address_id: str | None = None
