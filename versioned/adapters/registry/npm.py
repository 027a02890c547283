"""npm registry adapter.

Implements RegistryPort by fetching package documents (packuments)
from an npm-compatible registry and returning their "versions" map.
Each package is fetched at most once per adapter instance.
"""

import asyncio
import logging
import urllib.parse
from collections.abc import Mapping
from typing import Any

import httpx

from versioned.core.errors import RegistryError
from versioned.core.ports import RegistryPort

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_URL = "https://registry.npmjs.org"


def _package_path(package: str) -> str:
    """URL path for a package; scoped names keep "@" and escape the slash."""
    return "/" + urllib.parse.quote(package, safe="@")


class NpmRegistryAdapter(RegistryPort):
    """Registry lookups against the npm HTTP API via httpx."""

    def __init__(
        self,
        registry_url: str = DEFAULT_REGISTRY_URL,
        timeout_seconds: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize npm registry adapter.

        Args:
            registry_url: Base URL of the registry.
            timeout_seconds: Per-request timeout.
            client: Optional preconfigured client (tests inject a mock transport).
        """
        self.registry_url = registry_url.rstrip("/")
        self.client = client or httpx.AsyncClient(
            base_url=self.registry_url,
            timeout=timeout_seconds,
            headers={"Accept": "application/json"},
        )
        self._cache: dict[str, Mapping[str, Any]] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    async def __aenter__(self) -> "NpmRegistryAdapter":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.client.aclose()

    async def close(self) -> None:
        """Close the httpx client and clean up resources."""
        await self.client.aclose()

    async def load(self, package: str) -> Mapping[str, Any]:
        """Return the published versions of package, fetching once.

        Raises:
            RegistryError: On HTTP errors, transport errors or a document
                without a "versions" object.
        """
        lock = self._locks.setdefault(package, asyncio.Lock())
        async with lock:
            cached = self._cache.get(package)
            if cached is not None:
                return cached
            versions = await self._fetch(package)
            self._cache[package] = versions
            return versions

    async def _fetch(self, package: str) -> Mapping[str, Any]:
        try:
            response = await self.client.get(_package_path(package))
            response.raise_for_status()
            document = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Registry returned {e.response.status_code} for {package}",
                exc_info=True,
            )
            raise RegistryError(
                package, f"registry returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Registry request failed for {package}: {e}", exc_info=True)
            raise RegistryError(package, f"request failed: {e}") from e
        except ValueError as e:
            raise RegistryError(package, f"invalid JSON document: {e}") from e

        versions = document.get("versions") if isinstance(document, dict) else None
        if not isinstance(versions, dict):
            raise RegistryError(package, "document has no versions object")

        logger.debug(f"Fetched {len(versions)} versions of {package}")
        return versions
