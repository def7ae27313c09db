"""Best-effort documentation link resolution over HTTP.

Link probing is never on the required path: unreachable URLs are logged and
the caller falls back to a less specific link, or to no link at all.
"""

import logging
import time
from typing import Dict, List, Optional, Sequence

import httpx

from .constants import DEFAULT_LINK_RETRIES, DEFAULT_LINK_TIMEOUT, DEFAULT_RETRY_BACKOFF
from .template_model import ResourceType

logger = logging.getLogger(__name__)


def documentation_candidates(resource_type: ResourceType, base_url: str) -> List[str]:
    """List the documentation URLs of a resource type, most specific first.

    For 'Microsoft.KeyVault/vaults/accessPolicies' at '2022-07-01' this yields
    the versioned and unversioned URLs of the full type, then of 'vaults'.

    Args:
        resource_type: The resource type and API version.
        base_url: The documentation root.

    Returns:
        Candidate URLs in order of decreasing specificity.
    """
    base = base_url.rstrip("/")
    provider = resource_type.provider
    type_path = resource_type.type_path

    candidates = []
    for depth in range(len(type_path), 0, -1):
        path = "/".join(type_path[:depth])
        if resource_type.api_version:
            candidates.append(f"{base}/{provider}/{resource_type.api_version}/{path}")
        candidates.append(f"{base}/{provider}/{path}")
    return candidates


class DocumentationLinkResolver:
    """Picks the first reachable URL among candidates.

    When disabled, no request is made and the first candidate is used as is.
    Results are cached for the lifetime of the resolver.
    """

    def __init__(
        self,
        enabled: bool = True,
        timeout: float = DEFAULT_LINK_TIMEOUT,
        max_retries: int = DEFAULT_LINK_RETRIES,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF,
        client: Optional[httpx.Client] = None,
    ):
        self.enabled = enabled
        self.max_retries = max(0, max_retries)
        self.retry_backoff = retry_backoff
        self.timeout = timeout
        self._owns_client = client is None
        self._client = client
        self._reachable: Dict[str, bool] = {}

    def __enter__(self) -> "DocumentationLinkResolver":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def client(self) -> httpx.Client:
        """The HTTP client, created on first use."""
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout, follow_redirects=True)
        return self._client

    def close(self) -> None:
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    def _request(self, method: str, url: str) -> Optional[httpx.Response]:
        """Send a request, retrying transport errors and server errors.

        Returns:
            The last response, or None when every attempt failed in transport.
        """
        response = None
        for attempt in range(self.max_retries + 1):
            if attempt:
                time.sleep(self.retry_backoff * attempt)
            try:
                response = self.client.request(method, url)
            except httpx.TransportError as e:
                logger.debug(f"{method} {url} failed (attempt {attempt + 1}): {e}")
                response = None
                continue
            if response.status_code < 500:
                return response
            logger.debug(f"{method} {url} returned {response.status_code} (attempt {attempt + 1})")
        return response

    def is_reachable(self, url: str) -> bool:
        """Whether a URL answers with a success status."""
        if url not in self._reachable:
            response = self._request("HEAD", url)
            self._reachable[url] = response is not None and response.is_success
        return self._reachable[url]

    def resolve(self, candidates: Sequence[str]) -> Optional[str]:
        """Return the first reachable candidate.

        Args:
            candidates: URLs in order of preference.

        Returns:
            The chosen URL, or None when no candidate is reachable.
        """
        if not candidates:
            return None
        if not self.enabled:
            return candidates[0]

        for url in candidates:
            if self.is_reachable(url):
                return url
            logger.warning(f"Documentation link unreachable, trying a less specific one: {url}")
        logger.warning(f"No reachable documentation link among {len(candidates)} candidate(s)")
        return None

    def fetch_text(self, url: str) -> Optional[str]:
        """Fetch a text resource.

        Returns:
            The response body, or None when disabled or the fetch failed.
        """
        if not self.enabled:
            return None
        response = self._request("GET", url)
        if response is None or not response.is_success:
            status = "no response" if response is None else f"status {response.status_code}"
            logger.warning(f"Could not fetch {url} ({status})")
            return None
        return response.text
