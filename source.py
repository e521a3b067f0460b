"""Statement sources: where a subject's raw comments and posts come from.

RedditSource:
    Fetches a user's public comment and submission listings from
    reddit.com JSON endpoints, following pagination up to a configured
    item count and age.

StaticSource:
    Serves pre-collected content from memory or a JSON file
    (``{"comments": [...], "posts": [...]}``). Used by the CLI's
    ``--input`` option and by tests.

Error Handling Strategy:
    - HTTP 404 means the user does not exist: SourceUnavailable, no retry
    - HTTP 429, 5xx, timeouts and connection errors are retried with
      exponential backoff (MAX_RETRIES, RETRY_BASE_DELAY)
    - Exhausted retries raise SourceUnavailable
    - Individual malformed records are dropped, never fatal
"""

import asyncio
import json
import logging
import ssl
import time
from pathlib import Path
from typing import Any, Protocol

import aiohttp
import certifi

from config import Config
from errors import SourceUnavailable
from models.statement import SourceContent, SourceItem
from normalizer import coerce_items

logger = logging.getLogger(__name__)

REDDIT_BASE_URL = "https://www.reddit.com"
PAGE_SIZE = 100
USER_AGENT = "python:stancecheck:1.0 (contradiction analysis)"

_RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


class StatementSource(Protocol):
    """Anything that can produce raw content for a subject."""

    async def fetch(self, subject: str) -> SourceContent: ...


def _ssl_context() -> ssl.SSLContext:
    return ssl.create_default_context(cafile=certifi.where())


def _comment_record(data: dict[str, Any]) -> dict[str, Any]:
    return {
        "text": data.get("body"),
        "timestamp": int(data["created_utc"]) if data.get("created_utc") is not None else None,
        "venue": data.get("subreddit"),
        "weight": data.get("score") or 0,
        "permalink": data.get("permalink") or data.get("id") or "",
        "title": data.get("link_title"),
    }


def _post_record(data: dict[str, Any]) -> dict[str, Any]:
    return {
        "text": data.get("selftext"),
        "timestamp": int(data["created_utc"]) if data.get("created_utc") is not None else None,
        "venue": data.get("subreddit"),
        "weight": data.get("score") or 0,
        "permalink": data.get("permalink") or data.get("id") or "",
        "title": data.get("title"),
    }


def parse_listing(payload: dict[str, Any], kind: str) -> tuple[list[SourceItem], str | None]:
    """Convert one listing page into SourceItems.

    Args:
        payload: Decoded listing JSON
        kind: "comments" or "submitted"

    Returns:
        Tuple of (items, pagination cursor or None)
    """
    listing = payload.get("data") or {}
    to_record = _comment_record if kind == "comments" else _post_record
    records = [to_record(child.get("data") or {}) for child in listing.get("children") or []]
    return coerce_items(records), listing.get("after")


class RedditSource:
    """Fetches a user's public history from reddit.com.

    Example:
        >>> async with RedditSource(config) as source:
        ...     content = await source.fetch("some_user")
    """

    def __init__(self, config: Config, base_url: str = REDDIT_BASE_URL):
        """Initialize the source.

        Args:
            config: Retry, timeout and item-limit settings
            base_url: Reddit host (overridable for proxies)
        """
        self.config = config
        self.base_url = base_url.rstrip("/")
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "RedditSource":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.source_timeout_seconds),
                headers={"User-Agent": USER_AGENT},
            )
        return self._session

    async def _get_json(self, url: str, params: dict[str, Any]) -> dict[str, Any]:
        """GET a JSON document with retries and exponential backoff."""
        session = self._get_session()
        attempts = self.config.max_retries + 1
        last_error = "unknown error"

        for attempt in range(attempts):
            try:
                async with session.get(url, params=params, ssl=_ssl_context()) as resp:
                    if resp.status == 404:
                        raise SourceUnavailable("User not found")
                    if resp.status == 403:
                        raise SourceUnavailable("User profile is private or suspended")
                    if resp.status in _RETRYABLE_STATUS:
                        last_error = f"HTTP {resp.status}"
                    elif resp.status != 200:
                        raise SourceUnavailable(f"Unexpected HTTP {resp.status} from {url}")
                    else:
                        return await resp.json(content_type=None)
            except asyncio.TimeoutError:
                last_error = f"timed out after {self.config.source_timeout_seconds}s"
            except aiohttp.ClientError as e:
                last_error = f"{type(e).__name__}: {e}"

            if attempt < attempts - 1:
                delay = self.config.retry_base_delay * (2 ** attempt)
                logger.warning(
                    "Reddit request failed; retrying | url=%s attempt=%d error=%s delay=%.1fs",
                    url, attempt + 1, last_error, delay,
                )
                await asyncio.sleep(delay)

        raise SourceUnavailable(f"Failed to fetch data from Reddit: {last_error}")

    async def _fetch_listing(self, subject: str, kind: str) -> list[SourceItem]:
        url = f"{self.base_url}/user/{subject}/{kind}.json"
        cutoff = time.time() - self.config.source_max_age_days * 86400
        items: list[SourceItem] = []
        after: str | None = None

        while len(items) < self.config.source_max_items:
            params: dict[str, Any] = {"limit": PAGE_SIZE, "sort": "new", "raw_json": 1}
            if after:
                params["after"] = after
            payload = await self._get_json(url, params)
            page, after = parse_listing(payload, kind)

            fresh = [item for item in page if item.timestamp >= cutoff]
            items.extend(fresh)
            # Listings are newest first; an old item means the rest are older
            if not after or len(fresh) < len(page):
                break

        items = items[: self.config.source_max_items]
        logger.debug("Listing fetched | subject=%s kind=%s items=%d", subject, kind, len(items))
        return items

    async def fetch(self, subject: str) -> SourceContent:
        """Fetch comments and submissions for a user.

        Raises:
            SourceUnavailable: Unknown user or network failure after retries
        """
        comments, posts = await asyncio.gather(
            self._fetch_listing(subject, "comments"),
            self._fetch_listing(subject, "submitted"),
        )
        logger.info("Reddit content fetched | subject=%s comments=%d posts=%d", subject, len(comments), len(posts))
        return SourceContent(subject=subject, comments=comments, posts=posts)


class StaticSource:
    """Serves pre-collected content keyed by subject."""

    def __init__(self, contents: dict[str, SourceContent] | None = None, default: SourceContent | None = None):
        """Initialize the source.

        Args:
            contents: Content per subject (lower-cased lookup)
            default: Content returned for any subject not in ``contents``
        """
        self._contents = {k.lower(): v for k, v in (contents or {}).items()}
        self._default = default

    @classmethod
    def from_file(cls, path: Path | str) -> "StaticSource":
        """Load ``{"comments": [...], "posts": [...]}`` as content for any subject.

        Raises:
            SourceUnavailable: File missing or not valid JSON
        """
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise SourceUnavailable(f"Cannot read input file {path}: {e}") from e
        if not isinstance(data, dict):
            raise SourceUnavailable(f"Input file {path} must contain a JSON object")

        content = SourceContent(
            subject=str(data.get("subject", "")),
            comments=coerce_items(data.get("comments") or []),
            posts=coerce_items(data.get("posts") or []),
        )
        logger.info("Loaded static content | path=%s comments=%d posts=%d", path, len(content.comments), len(content.posts))
        return cls(default=content)

    async def fetch(self, subject: str) -> SourceContent:
        content = self._contents.get(subject.lower(), self._default)
        if content is None:
            raise SourceUnavailable(f"No content available for {subject}")
        return content.model_copy(update={"subject": subject})
