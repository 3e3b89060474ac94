"""Storefront backend factory.

Provides get_backend() / set_backend() to swap implementations:
- HTTP adapters talking to the storefront REST API (default)
- In-memory fakes for development and testing (STOREFRONT_BACKEND=fake)
"""

import os
from collections.abc import Callable
from dataclasses import dataclass

from ordering.backend.port import AddressBookPort, OrderServicePort
from ordering.backend.session import AuthSession

DEFAULT_API_URL = "http://localhost:5000/api"


@dataclass(frozen=True)
class Backend:
    orders: OrderServicePort
    addresses: AddressBookPort
    api: object | None = None

    async def aclose(self) -> None:
        if self.api is not None:
            await self.api.aclose()


BackendFactory = Callable[[AuthSession], Backend]

_current_factory: BackendFactory | None = None


def _http_backend(session: AuthSession) -> Backend:
    from ordering.backend.http_adapter import (
        DEFAULT_TIMEOUT,
        HttpAddressBook,
        HttpOrderService,
        StorefrontApiClient,
    )

    api = StorefrontApiClient(
        session,
        base_url=os.environ.get("STOREFRONT_API_URL", DEFAULT_API_URL),
        timeout=float(os.environ.get("STOREFRONT_API_TIMEOUT", DEFAULT_TIMEOUT)),
    )
    return Backend(orders=HttpOrderService(api), addresses=HttpAddressBook(api), api=api)


def _fake_backend_factory() -> BackendFactory:
    from ordering.backend.fake_adapter import FakeAddressBook, FakeOrderService

    shared = Backend(orders=FakeOrderService(), addresses=FakeAddressBook())
    return lambda _session: shared


def get_backend(session: AuthSession) -> Backend:
    """Return backend adapters bound to the shopper's session."""
    global _current_factory
    if _current_factory is None:
        adapter = os.environ.get("STOREFRONT_BACKEND", "http")
        if adapter == "http":
            _current_factory = _http_backend
        elif adapter == "fake":
            _current_factory = _fake_backend_factory()
        else:
            raise ValueError(f"Unknown storefront backend: {adapter}")
    return _current_factory(session)


def set_backend(factory: BackendFactory) -> None:
    """Override the backend factory (useful for tests)."""
    global _current_factory
    _current_factory = factory


def reset_backend() -> None:
    """Reset to the environment-configured backend."""
    global _current_factory
    _current_factory = None
