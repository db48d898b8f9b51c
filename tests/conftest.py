import pytest

from blobsize.oci import ClientPool

from helpers import FakeClient, FakeRegistry


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def clients(fake_client) -> ClientPool:
    """A client pool handing out the same fake client for every registry"""
    with ClientPool(lambda registry: fake_client) as pool:
        yield pool


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry()
