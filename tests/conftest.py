import pytest
import pytest_asyncio
from aiohttp.test_utils import TestServer

from matrix_status.core.client.http_client import MatrixHTTPClient
from matrix_status.core.config import MatrixStatusConfig
from tests.fixtures.helpers import FakeHomeserver


@pytest.fixture
def homeserver():
    """Scripted fake homeserver state."""
    return FakeHomeserver()


@pytest_asyncio.fixture
async def server_url(homeserver):
    """Serve the fake homeserver and yield its base URL."""
    server = TestServer(homeserver.make_app())
    await server.start_server()
    try:
        yield str(server.make_url("/")).rstrip("/")
    finally:
        await server.close()


@pytest_asyncio.fixture
async def client():
    """Matrix HTTP client closed after the test."""
    http_client = MatrixHTTPClient(request_timeout=10)
    try:
        yield http_client
    finally:
        await http_client.close()


@pytest.fixture
def config(server_url, tmp_path):
    """Complete configuration pointing at the fake homeserver."""
    return MatrixStatusConfig(
        homeserver_url=server_url,
        access_token="syt_token",
        sync_interval=5,
        cache_dir=tmp_path / "avatars",
    )
