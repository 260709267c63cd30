# -*- coding: utf-8 -*-
"""Location: ./scriptgateway/services/script_catalog_service.py
Copyright 2026
SPDX-License-Identifier: Apache-2.0

Client for the script-storage collaborator.

The dispatcher needs a script's language, source and metadata to pick
resource ceilings. Lookups go to ``GET /api/scripts/{id}``; transient
failures are retried with exponential backoff and jitter, and any final
failure yields ``None`` so the caller can fall back to defaults.
"""

# Standard
import asyncio
import random
from typing import Any, Dict, Optional
from urllib.parse import quote

# Third-Party
import httpx

# First-Party
from scriptgateway.config import settings
from scriptgateway.services.logging_service import LoggingService

logger = LoggingService().get_logger(__name__)

RETRYABLE_STATUS_CODES = {
    408,  # Request Timeout
    429,  # Too Many Requests
    502,  # Bad Gateway
    503,  # Service Unavailable
    504,  # Gateway Timeout
}


class ScriptCatalogService:
    """Looks up script details from the catalog REST API.

    Attributes:
        base_url (str): Catalog root, e.g. ``http://localhost:8000``.
        max_retries (int): Attempts made before giving up.
        base_backoff (float): Base backoff in seconds, doubled per attempt.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        max_retries: Optional[int] = None,
        base_backoff: float = 0.25,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or settings.script_api_base_url).rstrip("/")
        self.max_retries = max_retries or settings.script_catalog_max_retries
        self.base_backoff = base_backoff
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout or settings.script_catalog_timeout)

    async def _sleep_with_jitter(self, attempt: int) -> None:
        delay = self.base_backoff * (2**attempt)
        await asyncio.sleep(delay + random.uniform(0, delay * 0.5))

    async def get_script(self, script_id: str) -> Optional[Dict[str, Any]]:
        """Fetch ``{language, code, metadata?}`` for a script.

        Args:
            script_id: Script identity.

        Returns:
            Optional[Dict[str, Any]]: Script details, or None when the lookup
            failed for any reason (network, non-2xx status, bad JSON).
        """
        url = f"{self.base_url}/api/scripts/{quote(script_id, safe='')}"

        for attempt in range(self.max_retries):
            try:
                response = await self._client.get(url)
            except (httpx.TimeoutException, httpx.NetworkError) as exc:
                logger.warning(f"Script catalog lookup for {script_id} failed (attempt {attempt + 1}/{self.max_retries}): {exc}")
            except httpx.HTTPError as exc:
                logger.warning(f"Script catalog lookup for {script_id} failed: {exc}")
                return None
            else:
                if response.status_code in RETRYABLE_STATUS_CODES:
                    logger.info(f"Script catalog returned {response.status_code} for {script_id}: retrying")
                elif not response.is_success:
                    logger.info(f"Script catalog returned {response.status_code} for {script_id}")
                    return None
                else:
                    try:
                        payload = response.json()
                    except ValueError as exc:
                        logger.warning(f"Script catalog returned invalid JSON for {script_id}: {exc}")
                        return None
                    if not isinstance(payload, dict):
                        logger.warning(f"Script catalog returned a non-object payload for {script_id}")
                        return None
                    return payload

            if attempt + 1 < self.max_retries:
                await self._sleep_with_jitter(attempt)

        logger.error(f"Max retries reached looking up script {script_id}")
        return None

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this service created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ScriptCatalogService":
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()
