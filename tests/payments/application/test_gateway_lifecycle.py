"""Tests for gateway bootstrap: Unloaded -> Loading -> Ready | LoadFailed."""

import asyncio

import pytest
from payments.gateway.fake_adapter import FakeGateway
from payments.gateway.port import LOAD_FAILED_MESSAGE, GatewayState
from shared.errors import GatewayNotReady, GatewayTimeout


async def instant(_seconds):
    return None


class TestLoad:
    async def test_starts_unloaded(self):
        gateway = FakeGateway()
        assert gateway.state is GatewayState.UNLOADED
        assert gateway.is_ready is False

    async def test_load_makes_gateway_ready(self):
        gateway = FakeGateway()
        assert await gateway.load() is GatewayState.READY
        assert gateway.is_ready
        assert gateway.failure_reason is None

    async def test_concurrent_loads_bootstrap_once(self):
        gateway = FakeGateway()
        states = await asyncio.gather(gateway.load(), gateway.load(), gateway.load())
        assert states == [GatewayState.READY] * 3
        assert gateway.bootstrap_count == 1

    async def test_reloading_a_ready_gateway_is_a_noop(self):
        gateway = FakeGateway()
        await gateway.load()
        await gateway.load()
        assert gateway.bootstrap_count == 1

    async def test_loading_is_observable(self, payment_request):
        gateway = FakeGateway()
        gateway.configure(hold_bootstrap=True)
        pending = asyncio.ensure_future(gateway.load())
        await asyncio.sleep(0)
        await asyncio.sleep(0)

        assert gateway.state is GatewayState.LOADING
        with pytest.raises(GatewayNotReady) as exc:
            await gateway.initiate(payment_request)
        assert exc.value.state == "Loading"

        gateway.release()
        assert await pending is GatewayState.READY


class TestLoadFailure:
    async def test_bootstrap_error(self, payment_request):
        gateway = FakeGateway()
        gateway.configure(fail_bootstrap=True)

        assert await gateway.load() is GatewayState.LOAD_FAILED
        assert gateway.failure_reason == "Failed to load payment system"

        with pytest.raises(GatewayNotReady) as exc:
            await gateway.initiate(payment_request)
        assert exc.value.state == "LoadFailed"
        assert exc.value.message == LOAD_FAILED_MESSAGE

    async def test_entry_point_never_installed_times_out(self, payment_request):
        gateway = FakeGateway(timer=instant)
        gateway.configure(install_entry_point=False)

        assert await gateway.load() is GatewayState.LOAD_FAILED
        assert gateway.failure_reason == "GatewayTimeout"

        with pytest.raises(GatewayTimeout) as exc:
            await gateway.initiate(payment_request)
        assert exc.value.message == "Payment system loading timeout. Please try bank transfer."

    async def test_held_bootstrap_times_out(self):
        gateway = FakeGateway(timer=instant)
        gateway.configure(hold_bootstrap=True)

        assert await gateway.load() is GatewayState.LOAD_FAILED
        assert gateway.failure_reason == "GatewayTimeout"

    async def test_failed_load_is_not_retried(self):
        gateway = FakeGateway()
        gateway.configure(fail_bootstrap=True)
        await gateway.load()
        gateway.configure()

        assert await gateway.load() is GatewayState.LOAD_FAILED
        assert gateway.bootstrap_count == 1
