"""Published checksum retrieval."""

import logging

import httpx

from getie.errors import NetworkError


logger = logging.getLogger(__name__)


class IntegrityOracle:
    """Fetches the checksum a publisher serves next to each archive.

    The response body is the checksum itself, not structured data.
    """

    def __init__(self, client: httpx.AsyncClient):
        """Initialize oracle."""
        self.client = client

    async def fetch_expected_checksum(self, checksum_url: str) -> str:
        """Return the trimmed response body of ``checksum_url``."""
        logger.debug(f"Fetching expected checksum from {checksum_url}")
        try:
            response = await self.client.get(checksum_url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NetworkError(
                f"HTTP error {e.response.status_code} fetching {checksum_url}"
            ) from e
        except httpx.RequestError as e:
            raise NetworkError(f"Connection error fetching {checksum_url}: {e}") from e

        checksum = response.text.strip()
        if not checksum:
            raise NetworkError(f"Empty checksum received from {checksum_url}")

        logger.info(f"Expected checksum {checksum}")
        return checksum
