import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Select the config environment and keep adapter factories on their
    in-memory implementations unless the caller overrides them.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env
    os.environ.setdefault("STOREFRONT_BACKEND", "fake")
    os.environ.setdefault("PAYMENT_GATEWAY_ADAPTER", "fake")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        # Get the test file path relative to the tests directory
        test_path = Path(item.fspath)

        # Mark tests based on their directory
        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(autouse=True)
def reset_adapters():
    """Give every test fresh adapter singletons."""
    from ordering.backend import reset_backend
    from payments.gateway import reset_gateway

    reset_backend()
    reset_gateway()
    yield
    reset_backend()
    reset_gateway()
