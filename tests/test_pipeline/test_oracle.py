"""Tests for the integrity oracle."""

import httpx
import pytest

from getie.errors import NetworkError
from getie.pipeline.oracle import IntegrityOracle


CHECKSUM_URL = "https://example.com/vms/image.zip.md5.txt"


def make_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
class TestIntegrityOracle:
    """Test IntegrityOracle."""

    async def test_returns_trimmed_body(self):
        """Test the checksum is the literal response body, trimmed."""
        def handler(request):
            assert str(request.url) == CHECKSUM_URL
            return httpx.Response(200, text="  0CC175B9C0F1B6A831C399E269772661\r\n")

        async with make_client(handler) as client:
            checksum = await IntegrityOracle(client).fetch_expected_checksum(CHECKSUM_URL)

        assert checksum == "0CC175B9C0F1B6A831C399E269772661"

    async def test_case_preserved(self):
        """Test the published value is not normalized."""
        async with make_client(lambda request: httpx.Response(200, text="abcDEF")) as client:
            checksum = await IntegrityOracle(client).fetch_expected_checksum(CHECKSUM_URL)

        assert checksum == "abcDEF"

    async def test_http_error(self):
        async with make_client(lambda request: httpx.Response(404, text="not found")) as client:
            with pytest.raises(NetworkError) as exc_info:
                await IntegrityOracle(client).fetch_expected_checksum(CHECKSUM_URL)

        assert "404" in str(exc_info.value)

    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(NetworkError) as exc_info:
                await IntegrityOracle(client).fetch_expected_checksum(CHECKSUM_URL)

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    async def test_empty_body(self):
        async with make_client(lambda request: httpx.Response(200, text="\n")) as client:
            with pytest.raises(NetworkError):
                await IntegrityOracle(client).fetch_expected_checksum(CHECKSUM_URL)
