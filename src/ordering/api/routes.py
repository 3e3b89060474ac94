"""FastAPI routes for the Ordering domain — carts and checkout."""

import asyncio

import structlog
from fastapi import APIRouter, Header, HTTPException
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from ordering.api.schemas import (
    AddressSchema,
    AddToCartRequest,
    AmountsSchema,
    CartIdResponse,
    CartLineSchema,
    CartResponse,
    CheckoutStatusResponse,
    CreateCartRequest,
    PlaceOrderRequest,
    StatusResponse,
    TransferInstructionsSchema,
    UpdateCartQuantityRequest,
)
from ordering.backend import Backend, get_backend
from ordering.backend.session import AuthSession
from ordering.cart.cart import ShoppingCart
from ordering.cart.items import AddToCart, ClearCart, CreateCart, RemoveFromCart, UpdateCartQuantity
from ordering.checkout.address import AddressResolver
from ordering.checkout.fulfillment import AddressEntry, Delivery, FulfillmentMode, Pickup
from ordering.checkout.order import PaymentMethod
from ordering.checkout.orchestrator import CheckoutOrchestrator, CheckoutRequest, Contact
from ordering.checkout.pricing import price
from payments.gateway import get_gateway
from shared.errors import CheckoutInProgress

logger = structlog.get_logger(__name__)


def _load_cart(cart_id: str) -> ShoppingCart:
    try:
        return current_domain.repository_for(ShoppingCart).get(cart_id)
    except ObjectNotFoundError as exc:
        raise HTTPException(status_code=404, detail=f"Cart {cart_id} not found") from exc


def _process(command) -> object:
    try:
        return current_domain.process(command, asynchronous=False)
    except ObjectNotFoundError as exc:
        raise HTTPException(status_code=404, detail=f"Cart {command.cart_id} not found") from exc


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.post("", status_code=201, response_model=CartIdResponse)
async def create_cart(body: CreateCartRequest) -> CartIdResponse:
    command = CreateCart(customer_id=body.customer_id)
    result = current_domain.process(command, asynchronous=False)
    return CartIdResponse(cart_id=result)


@cart_router.get("/{cart_id}", response_model=CartResponse)
async def get_cart(cart_id: str, mode: FulfillmentMode = FulfillmentMode.DELIVERY) -> CartResponse:
    """Cart contents with the price breakdown for the chosen fulfillment mode."""
    cart = _load_cart(cart_id)
    return CartResponse(
        cart_id=str(cart.id),
        customer_id=cart.customer_id,
        lines=[
            CartLineSchema(
                product_id=str(line.product_id),
                name=line.name,
                unit_price=line.unit_price,
                quantity=line.quantity,
                line_total=str(line.line_total),
            )
            for line in cart.lines
        ],
        item_count=cart.item_count,
        amounts=AmountsSchema(**price(cart.subtotal(), mode).as_dict()),
    )


@cart_router.post("/{cart_id}/items", response_model=StatusResponse)
async def add_cart_item(cart_id: str, body: AddToCartRequest) -> StatusResponse:
    command = AddToCart(
        cart_id=cart_id,
        product_id=body.product_id,
        name=body.name,
        unit_price=body.unit_price,
        quantity=body.quantity,
    )
    _process(command)
    return StatusResponse()


@cart_router.put("/{cart_id}/items/{product_id}", response_model=StatusResponse)
async def update_cart_item(cart_id: str, product_id: str, body: UpdateCartQuantityRequest) -> StatusResponse:
    command = UpdateCartQuantity(
        cart_id=cart_id,
        product_id=product_id,
        new_quantity=body.new_quantity,
    )
    _process(command)
    return StatusResponse()


@cart_router.delete("/{cart_id}/items/{product_id}", response_model=StatusResponse)
async def remove_cart_item(cart_id: str, product_id: str) -> StatusResponse:
    _process(RemoveFromCart(cart_id=cart_id, product_id=product_id))
    return StatusResponse()


@cart_router.delete("/{cart_id}/items", response_model=StatusResponse)
async def clear_cart(cart_id: str) -> StatusResponse:
    _process(ClearCart(cart_id=cart_id))
    return StatusResponse(status="cleared")


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])

# One orchestrator per cart, kept after the run so its outcome can be read back.
# Finished runs are dropped oldest first once more than MAX_TRACKED_CHECKOUTS are kept.
MAX_TRACKED_CHECKOUTS = 1000

_checkouts: dict[str, CheckoutOrchestrator] = {}


def get_checkout(cart_id: str) -> CheckoutOrchestrator | None:
    return _checkouts.get(cart_id)


def reset_checkouts() -> None:
    """Forget all checkout runs (useful for tests)."""
    _checkouts.clear()


def _track(cart_id: str, orchestrator: CheckoutOrchestrator) -> None:
    _checkouts.pop(cart_id, None)
    _checkouts[cart_id] = orchestrator

    finished = [tracked_id for tracked_id, tracked in _checkouts.items() if not tracked.in_flight]
    for tracked_id in finished:
        if len(_checkouts) <= MAX_TRACKED_CHECKOUTS:
            break
        del _checkouts[tracked_id]
        logger.debug("checkout_forgotten", cart_id=tracked_id)


async def _address_saved(cart_id: str, address_id: str) -> None:
    """Hand the new address id back so the storefront can refresh its address list."""
    orchestrator = _checkouts.get(cart_id)
    if orchestrator is not None:
        orchestrator.saved_address_id = address_id


def _auth_session(authorization: str | None) -> AuthSession:
    token = None
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[len("bearer ") :].strip() or None
    return AuthSession(token)


def _checkout_request(body: PlaceOrderRequest) -> CheckoutRequest:
    if body.fulfillment_mode == FulfillmentMode.PICKUP.value:
        fulfillment = Pickup(requested_time=body.pickup_time or "")
    else:
        address = body.address or AddressSchema()
        fulfillment = Delivery(address=AddressEntry(**address.model_dump()))

    return CheckoutRequest(
        contact=Contact(**body.contact.model_dump()),
        fulfillment=fulfillment,
        payment_method=PaymentMethod(body.payment_method),
        notes=body.notes,
    )


def _release_backend_when_done(task: asyncio.Task, backend: Backend) -> None:
    def _done(finished: asyncio.Task) -> None:
        if not finished.cancelled() and finished.exception() is not None:
            logger.error("checkout_task_crashed", error=str(finished.exception()))
        asyncio.ensure_future(backend.aclose())

    task.add_done_callback(_done)


def _checkout_response(orchestrator: CheckoutOrchestrator) -> CheckoutStatusResponse:
    session = orchestrator.checkout
    order = orchestrator.order
    transfer = orchestrator.transfer
    return CheckoutStatusResponse(
        cart_id=str(session.cart_id),
        checkout_id=str(session.id),
        status=session.status,
        order_id=str(session.order_id) if session.order_id else None,
        payment_reference=session.payment_reference,
        payment_url=session.payment_url,
        failure_reason=session.failure_reason,
        message=session.message,
        redirect_to=session.redirect_to,
        amounts=AmountsSchema(**order.amounts.as_dict()) if order else None,
        transfer=TransferInstructionsSchema(**transfer.as_dict()) if transfer else None,
        saved_address_id=orchestrator.saved_address_id,
    )


@checkout_router.post("/{cart_id}", response_model=CheckoutStatusResponse)
async def place_order(
    cart_id: str,
    body: PlaceOrderRequest,
    authorization: str | None = Header(default=None),
) -> CheckoutStatusResponse:
    """Start checkout and answer once the shopper has something to act on.

    That is either a terminal state (settled, transfer handoff, failure) or
    an open payment surface whose ``payment_url`` the shopper must visit.
    """
    existing = _checkouts.get(cart_id)
    if existing is not None and existing.in_flight:
        raise HTTPException(status_code=409, detail=CheckoutInProgress.default_message)

    cart = _load_cart(cart_id)
    session = _auth_session(authorization)
    backend = get_backend(session)
    orchestrator = CheckoutOrchestrator(
        cart=cart,
        orders=backend.orders,
        resolver=AddressResolver(backend.addresses, on_saved=lambda address_id: _address_saved(cart_id, address_id)),
        gateway=get_gateway(),
        auth=session,
        cart_repository=current_domain.repository_for(ShoppingCart),
    )
    try:
        task = orchestrator.start(_checkout_request(body))
    except CheckoutInProgress as exc:
        raise HTTPException(status_code=409, detail=exc.message) from exc
    _track(cart_id, orchestrator)
    _release_backend_when_done(task, backend)

    await orchestrator.until_actionable()
    return _checkout_response(orchestrator)


@checkout_router.get("/{cart_id}", response_model=CheckoutStatusResponse)
async def get_checkout_status(cart_id: str) -> CheckoutStatusResponse:
    orchestrator = _checkouts.get(cart_id)
    if orchestrator is None or orchestrator.checkout is None:
        raise HTTPException(status_code=404, detail=f"No checkout for cart {cart_id}")
    return _checkout_response(orchestrator)


@checkout_router.post("/{cart_id}/transfer", response_model=CheckoutStatusResponse)
async def retry_with_transfer(cart_id: str) -> CheckoutStatusResponse:
    """Pay the order of a cancelled or gateway-failed checkout by bank transfer."""
    orchestrator = _checkouts.get(cart_id)
    if orchestrator is None or orchestrator.checkout is None:
        raise HTTPException(status_code=404, detail=f"No checkout for cart {cart_id}")

    try:
        orchestrator.retry_with_transfer()
    except CheckoutInProgress as exc:
        raise HTTPException(status_code=409, detail=exc.message) from exc
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.messages) from exc
    return _checkout_response(orchestrator)
