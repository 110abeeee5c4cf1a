"""
Remote Recipe Index client - httpx.

Talks to the remote recipe index: scrapes the directory listing at the base
URL for recipe filenames, downloads individual recipe payloads under a size
cap, and probes the host for liveness.

Network failures never raise out of this client. Every call returns a result
object carrying `success` and `error`, so the sync engine can treat any
failure as "this item failed, proceed".
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import httpx

from django.conf import settings

logger = logging.getLogger(__name__)


RECIPE_FILE_EXTENSION = ".brewpadrecipe"

# Tolerant scrape of a directory listing: any path-like token ending in the
# recipe extension, wherever it appears (href, plain text, JSON...).
RECIPE_FILENAME_PATTERN = re.compile(
    r"[A-Za-z0-9_./-]+" + re.escape(RECIPE_FILE_EXTENSION), re.IGNORECASE
)


@dataclass
class ListingResult:
    """Filenames found in the remote listing."""

    names: List[str] = field(default_factory=list)
    success: bool = False
    status_code: int = 0
    error: Optional[str] = None


@dataclass
class DownloadResult:
    """Raw payload of one downloaded recipe file."""

    name: str
    content: bytes = b""
    success: bool = False
    status_code: int = 0
    error: Optional[str] = None


@dataclass
class HealthStatus:
    """
    Reachability of the remote host.

    Attributes:
        reachable: True when the host answered with a 2xx status
        status_code: HTTP status, if any response was received
        message: "Status: <code>", "Error: <message>" or "No response"
    """

    reachable: bool
    status_code: Optional[int] = None
    message: str = "No response"

    @property
    def show_error(self) -> bool:
        return not self.reachable

    def to_dict(self) -> Dict[str, object]:
        return {
            "reachable": self.reachable,
            "status_code": self.status_code,
            "message": self.message,
            "show_error": self.show_error,
        }


class RecipeTooLargeError(Exception):
    """Raised internally when a download exceeds the size cap."""

    pass


def extract_recipe_filenames(content: str) -> List[str]:
    """
    Extract bare recipe filenames from a listing body.

    Directory prefixes are stripped and duplicates removed, keeping the
    order in which names first appear.

    Example:
        >>> extract_recipe_filenames('<a href="/recipes/mocha.brewpadrecipe">mocha.brewpadrecipe</a>')
        ['mocha.brewpadrecipe']
    """
    names: List[str] = []
    seen = set()
    for match in RECIPE_FILENAME_PATTERN.finditer(content or ""):
        name = match.group(0).rsplit("/", 1)[-1]
        if name.lower() == RECIPE_FILE_EXTENSION:
            # "/recipes/.brewpadrecipe" has no name part
            continue
        if name in seen:
            continue
        seen.add(name)
        names.append(name)
    return names


def ensure_recipe_extension(name: str) -> str:
    """Append the recipe extension unless the name already ends with it."""
    if name.lower().endswith(RECIPE_FILE_EXTENSION):
        return name
    return f"{name}{RECIPE_FILE_EXTENSION}"


class RemoteIndexClient:
    """
    Async client for the remote recipe index.

    Features:
    - Async HTTP client with connection pooling
    - Per-request timeout and retry with exponential backoff
    - Size-capped streaming downloads
    - Liveness probe independent of listing and downloads
    """

    DEFAULT_USER_AGENT = "Brewpad/1.0"

    DEFAULT_HEADERS = {
        "Accept": "text/html,text/plain,application/json;q=0.9,*/*;q=0.8",
        "Accept-Encoding": "gzip, deflate",
    }

    def __init__(
        self,
        base_url: Optional[str] = None,
        health_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        max_file_size: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Listing URL; recipe files live directly under it (default from settings)
            health_url: Host probed by check_health (default from settings)
            timeout: Request timeout in seconds (default from settings)
            max_retries: Extra attempts after the first for transient failures (default from settings)
            max_file_size: Download size cap in bytes (default from settings)
            transport: Optional httpx transport, e.g. httpx.MockTransport in tests
        """
        self.base_url = base_url or getattr(settings, "BREWPAD_SERVER_BASE_URL")
        self.health_url = health_url or getattr(settings, "BREWPAD_HEALTH_URL")
        self.timeout = timeout or getattr(settings, "BREWPAD_REQUEST_TIMEOUT", 30)
        self.max_retries = (
            max_retries
            if max_retries is not None
            else getattr(settings, "BREWPAD_MAX_RETRIES", 2)
        )
        self.max_file_size = max_file_size or getattr(
            settings, "BREWPAD_MAX_RECIPE_FILE_SIZE", 10 * 1024 * 1024
        )
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        """Async context manager entry."""
        await self._init_http_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def _init_http_client(self):
        """Initialize HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers={**self.DEFAULT_HEADERS, "User-Agent": self.DEFAULT_USER_AGENT},
                follow_redirects=True,
                transport=self._transport,
            )

    async def close(self):
        """Close HTTP client connection."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    def file_url(self, name: str) -> str:
        return f"{self.base_url.rstrip('/')}/{ensure_recipe_extension(name)}"

    async def fetch_listing(self) -> ListingResult:
        """
        Fetch the remote listing and extract recipe filenames.

        Returns:
            ListingResult; on failure `success` is False and `names` is empty
        """
        if self._http_client is None:
            await self._init_http_client()

        try:
            response = await self._get_with_retry(self.base_url)
        except httpx.TimeoutException as e:
            logger.warning(f"Timeout fetching recipe listing {self.base_url}: {e}")
            return ListingResult(error=f"Timeout: {e}")
        except httpx.HTTPError as e:
            logger.warning(f"Failed to fetch recipe listing {self.base_url}: {e}")
            return ListingResult(error=str(e))

        if response.status_code >= 400:
            logger.warning(f"Recipe listing returned HTTP {response.status_code}")
            return ListingResult(
                status_code=response.status_code,
                error=f"HTTP {response.status_code}",
            )

        try:
            content = response.content.decode("utf-8")
        except UnicodeDecodeError as e:
            logger.warning(f"Recipe listing is not valid UTF-8: {e}")
            return ListingResult(status_code=response.status_code, error="Undecodable listing")

        names = extract_recipe_filenames(content)
        logger.info(f"Remote listing has {len(names)} recipe files")
        return ListingResult(names=names, success=True, status_code=response.status_code)

    async def download_one(self, name: str) -> DownloadResult:
        """
        Download one recipe payload.

        The payload is streamed and discarded as soon as it exceeds the size
        cap; nothing is written by this client.
        """
        if self._http_client is None:
            await self._init_http_client()

        filename = ensure_recipe_extension(name)
        url = self.file_url(filename)

        try:
            status_code, content = await self._download_capped(url)
        except RecipeTooLargeError as e:
            logger.warning(f"Discarding oversized recipe {filename}: {e}")
            return DownloadResult(name=filename, error=str(e))
        except httpx.TimeoutException as e:
            logger.warning(f"Timeout downloading recipe {filename}: {e}")
            return DownloadResult(name=filename, error=f"Timeout: {e}")
        except httpx.HTTPError as e:
            logger.warning(f"Failed to download recipe {filename}: {e}")
            return DownloadResult(name=filename, error=str(e))

        if status_code >= 400:
            logger.warning(f"Recipe {filename} returned HTTP {status_code}")
            return DownloadResult(
                name=filename, status_code=status_code, error=f"HTTP {status_code}"
            )

        return DownloadResult(
            name=filename, content=content, success=True, status_code=status_code
        )

    async def check_health(self) -> HealthStatus:
        """Probe the remote host once, without retries."""
        if self._http_client is None:
            await self._init_http_client()

        try:
            response = await self._http_client.get(self.health_url)
        except httpx.HTTPError as e:
            logger.warning(f"Recipe server unreachable: {e}")
            return HealthStatus(reachable=False, message=f"Error: {e}")

        return HealthStatus(
            reachable=200 <= response.status_code < 300,
            status_code=response.status_code,
            message=f"Status: {response.status_code}",
        )

    async def _download_capped(self, url: str):
        """Stream url into memory, aborting once the size cap is exceeded."""
        last_error: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            try:
                async with self._http_client.stream("GET", url) as response:
                    if response.status_code >= 400:
                        if response.status_code < 500 or attempt == self.max_retries:
                            return response.status_code, b""
                        raise httpx.HTTPStatusError(
                            f"HTTP {response.status_code}",
                            request=response.request,
                            response=response,
                        )

                    content_length = response.headers.get("content-length")
                    if content_length and content_length.isdigit() and int(content_length) > self.max_file_size:
                        raise RecipeTooLargeError(
                            f"{content_length} bytes exceeds {self.max_file_size}"
                        )

                    chunks = []
                    received = 0
                    async for chunk in response.aiter_bytes():
                        received += len(chunk)
                        if received > self.max_file_size:
                            raise RecipeTooLargeError(
                                f"more than {self.max_file_size} bytes received"
                            )
                        chunks.append(chunk)
                    return response.status_code, b"".join(chunks)

            except (httpx.TimeoutException, httpx.TransportError, httpx.HTTPStatusError) as e:
                last_error = e
                logger.warning(
                    f"Error downloading {url}: {e} (attempt {attempt + 1}/{self.max_retries + 1})"
                )

            if attempt < self.max_retries:
                await asyncio.sleep(2 ** attempt)

        raise last_error

    async def _get_with_retry(self, url: str) -> httpx.Response:
        """
        GET with exponential backoff retry logic.

        Client errors (4xx) are returned immediately; transient failures and
        5xx responses are retried.
        """
        last_error: Optional[Exception] = None

        for attempt in range(self.max_retries + 1):
            try:
                response = await self._http_client.get(url)

                # Don't retry on 4xx client errors
                if 400 <= response.status_code < 500:
                    return response

                response.raise_for_status()
                return response

            except httpx.HTTPStatusError as e:
                last_error = e
                logger.warning(
                    f"HTTP error {e.response.status_code} for {url} "
                    f"(attempt {attempt + 1}/{self.max_retries + 1})"
                )
                if attempt == self.max_retries:
                    return e.response

            except (httpx.TimeoutException, httpx.TransportError) as e:
                last_error = e
                logger.warning(
                    f"Error fetching {url}: {e} (attempt {attempt + 1}/{self.max_retries + 1})"
                )

            # Exponential backoff
            if attempt < self.max_retries:
                await asyncio.sleep(2 ** attempt)

        raise last_error
