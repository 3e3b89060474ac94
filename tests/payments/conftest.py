import pytest
from payments.gateway.fake_adapter import FakeGateway
from payments.gateway.port import PaymentRequest


@pytest.fixture
async def loaded_gateway():
    gateway = FakeGateway()
    await gateway.load()
    return gateway


@pytest.fixture
def payment_request():
    return PaymentRequest(
        amount_minor_units=1075000,
        currency="NGN",
        reference="ord-001",
        payer_email="ada@example.com",
        metadata={"order_id": "ord-001", "order_type": "pickup"},
    )
