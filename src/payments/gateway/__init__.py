"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- FakeGateway for development and testing (default)
- PaystackGateway for production (PAYMENT_GATEWAY_ADAPTER=paystack)
"""

import os

from payments.gateway.port import DEFAULT_LOAD_TIMEOUT, DEFAULT_PAYMENT_WINDOW, PaymentGateway

_current_gateway: PaymentGateway | None = None


def _load_timeout() -> float:
    return float(os.environ.get("GATEWAY_LOAD_TIMEOUT", DEFAULT_LOAD_TIMEOUT))


def _payment_window() -> float | None:
    """Seconds an opened payment may stay unanswered; 0 disables the limit."""
    window = float(os.environ.get("GATEWAY_PAYMENT_WINDOW", DEFAULT_PAYMENT_WINDOW))
    return window or None


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, built from PAYMENT_GATEWAY_ADAPTER."""
    global _current_gateway
    if _current_gateway is None:
        adapter = os.environ.get("PAYMENT_GATEWAY_ADAPTER", "fake")
        if adapter == "fake":
            from payments.gateway.fake_adapter import FakeGateway

            _current_gateway = FakeGateway(load_timeout=_load_timeout(), payment_window=_payment_window())
        elif adapter == "paystack":
            from payments.gateway.paystack_adapter import DEFAULT_BASE_URL, PaystackGateway

            _current_gateway = PaystackGateway(
                secret_key=os.environ.get("PAYSTACK_SECRET_KEY", ""),
                base_url=os.environ.get("PAYSTACK_BASE_URL", DEFAULT_BASE_URL),
                callback_url=os.environ.get("PAYSTACK_CALLBACK_URL"),
                cancel_url=os.environ.get("PAYSTACK_CANCEL_URL"),
                load_timeout=_load_timeout(),
                payment_window=_payment_window(),
            )
        else:
            raise ValueError(f"Unknown payment gateway adapter: {adapter}")
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to the environment-configured gateway."""
    global _current_gateway
    _current_gateway = None
