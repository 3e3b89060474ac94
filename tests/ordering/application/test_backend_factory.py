"""Tests for selecting the storefront backend adapters."""

import pytest
from ordering.backend import Backend, get_backend, reset_backend, set_backend
from ordering.backend.fake_adapter import FakeAddressBook, FakeOrderService
from ordering.backend.http_adapter import HttpAddressBook, HttpOrderService
from ordering.backend.session import AuthSession


class TestBackendFactory:
    def test_fake_backend_is_shared_across_sessions(self, monkeypatch):
        monkeypatch.setenv("STOREFRONT_BACKEND", "fake")
        first = get_backend(AuthSession("token-a"))
        second = get_backend(AuthSession("token-b"))

        assert isinstance(first.orders, FakeOrderService)
        assert isinstance(first.addresses, FakeAddressBook)
        assert first is second

    async def test_http_backend_is_bound_to_session(self, monkeypatch):
        monkeypatch.setenv("STOREFRONT_BACKEND", "http")
        monkeypatch.setenv("STOREFRONT_API_URL", "http://storefront.test/api")
        session = AuthSession("token-a")
        backend = get_backend(session)

        assert isinstance(backend.orders, HttpOrderService)
        assert isinstance(backend.addresses, HttpAddressBook)
        assert backend.api.session is session
        await backend.aclose()

    def test_unknown_backend(self, monkeypatch):
        monkeypatch.setenv("STOREFRONT_BACKEND", "carrier-pigeon")
        with pytest.raises(ValueError):
            get_backend(AuthSession("token-a"))

    def test_set_and_reset(self, monkeypatch):
        monkeypatch.setenv("STOREFRONT_BACKEND", "fake")
        custom = Backend(orders=FakeOrderService(), addresses=FakeAddressBook())
        set_backend(lambda _session: custom)
        assert get_backend(AuthSession()) is custom

        reset_backend()
        assert get_backend(AuthSession()) is not custom
