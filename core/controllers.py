# core/controllers.py
"""
Per-view fetch controllers.

Each controller walks IDLE -> LOADING -> LOADED | FAILED. The provider call
runs in a worker thread, but controller state is only ever touched on the
event loop. A generation counter guards against stale responses: results
that arrive after unmount() or after a newer load() are dropped.
"""
import asyncio
import enum
from typing import Any, Callable, Hashable, List, Optional, Tuple

from .blog import newest_first
from .catalog import (
    default_filter_spec,
    derive_view,
    is_filter_active,
    result_summary,
    update_filter_spec,
)
from .errors import MalformedRecord, ProviderError
from .logger import get_logger
from .models import Article, FilterSpec, Product
from .normalize import normalize_article, normalize_articles, normalize_products
from .sanitize import sanitize

logger = get_logger(__name__)


class FetchState(enum.Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class _FetchController:
    def __init__(self):
        self.state = FetchState.IDLE
        self.error: Optional[BaseException] = None
        self._generation = 0
        self._in_flight: Optional[Hashable] = None

    @property
    def is_loading(self) -> bool:
        return self.state is FetchState.LOADING

    def unmount(self) -> None:
        """Stop caring about the in-flight fetch, if any."""
        self._generation += 1
        self._in_flight = None
        if self.state is FetchState.LOADING:
            self.state = FetchState.IDLE

    async def _fetch(
        self, key: Hashable, call: Callable[..., Any], *args: Any
    ) -> Tuple[bool, Any]:
        """
        Run one provider call for `key`.

        Returns (applied, raw). applied is False when the call was skipped
        (same key already in flight), failed, or went stale.
        """
        if self.state is FetchState.LOADING and self._in_flight == key:
            logger.debug("Fetch for %s already in flight; not issuing another", key)
            return False, None

        self._generation += 1
        generation = self._generation
        self._in_flight = key
        self.state = FetchState.LOADING
        self.error = None

        try:
            raw = await asyncio.to_thread(call, *args)
        except Exception as e:
            if generation != self._generation:
                logger.debug("Discarding stale failure for %s: %s", key, e)
                return False, None
            self._in_flight = None
            self.state = FetchState.FAILED
            self.error = e
            if isinstance(e, ProviderError):
                logger.error("Fetch for %s failed: %s", key, e)
            else:
                logger.exception("Unexpected error fetching %s: %s", key, e)
            return False, None

        if generation != self._generation:
            logger.debug("Discarding stale response for %s", key)
            return False, None

        self._in_flight = None
        return True, raw


class CatalogController(_FetchController):
    """Owns one catalog snapshot and the filter spec applied to it."""

    def __init__(self, provider, collection_handle: str = "frontpage", limit: int = 50):
        super().__init__()
        self.provider = provider
        self.collection_handle = collection_handle
        self.limit = limit
        self.snapshot: Tuple[Product, ...] = ()
        self.filter_spec: FilterSpec = default_filter_spec()
        self.view: List[Product] = []

    async def load(self) -> FetchState:
        applied, raw = await self._fetch(
            ("collection", self.collection_handle, self.limit),
            self.provider.fetch_products_by_collection,
            self.collection_handle,
            self.limit,
        )
        if applied:
            self.snapshot = tuple(normalize_products(raw or []))
            self.state = FetchState.LOADED
            logger.info(
                "Loaded %d products from collection '%s'",
                len(self.snapshot), self.collection_handle,
            )
            self._rederive()
        elif self.state is FetchState.FAILED:
            self.snapshot = ()
            self._rederive()
        return self.state

    def _rederive(self) -> None:
        self.view = derive_view(self.snapshot, self.filter_spec)

    def set_filter(self, **changes: Any) -> List[Product]:
        """Change sort_key, price_range and/or only_in_stock; never refetches."""
        self.filter_spec = update_filter_spec(self.filter_spec, **changes)
        self._rederive()
        return self.view

    def clear_filters(self) -> List[Product]:
        self.filter_spec = default_filter_spec()
        self._rederive()
        return self.view

    @property
    def filter_active(self) -> bool:
        return is_filter_active(self.filter_spec)

    @property
    def summary(self) -> str:
        if self.state is FetchState.LOADING:
            return "Loading..."
        return result_summary(self.view, self.snapshot)


class ArticleListController(_FetchController):
    def __init__(self, provider, limit: int = 20, sanitizer: Callable[[str], str] = sanitize):
        super().__init__()
        self.provider = provider
        self.limit = limit
        self.sanitizer = sanitizer
        self.articles: Tuple[Article, ...] = ()

    async def load(self) -> FetchState:
        applied, raw = await self._fetch(
            ("articles", self.limit), self.provider.fetch_articles, self.limit
        )
        if applied:
            self.articles = tuple(newest_first(normalize_articles(raw or [], self.sanitizer)))
            self.state = FetchState.LOADED
            logger.info("Loaded %d articles", len(self.articles))
        elif self.state is FetchState.FAILED:
            self.articles = ()
        return self.state


class ArticleController(_FetchController):
    """
    Single-article lookup keyed by (blog_handle, article_handle).
    LOADED with article None means not found; FAILED means the call errored.
    """

    def __init__(self, provider, sanitizer: Callable[[str], str] = sanitize):
        super().__init__()
        self.provider = provider
        self.sanitizer = sanitizer
        self.article: Optional[Article] = None
        self.key: Optional[Tuple[str, str]] = None

    @property
    def not_found(self) -> bool:
        return self.state is FetchState.LOADED and self.article is None

    async def load(self, blog_handle: str, article_handle: str) -> FetchState:
        key = (blog_handle, article_handle)
        if self.key != key:
            self.article = None
        self.key = key

        applied, raw = await self._fetch(
            key, self.provider.fetch_article_by_handle, blog_handle, article_handle
        )
        if not applied:
            return self.state

        article = None
        if raw is not None:
            try:
                article = normalize_article(raw, self.sanitizer)
            except MalformedRecord as e:
                logger.warning("Article %s/%s is malformed; treating as not found: %s",
                               blog_handle, article_handle, e)
        self.article = article
        self.state = FetchState.LOADED
        return self.state
