# providers/shopify.py
"""
Shopify Storefront API client.

Speaks GraphQL over HTTPS and hands back plain product/article dicts: every
``edges { node }`` connection is flattened to a list here so nothing past
this module ever sees the wire shape.
"""
import os
from typing import Any, Dict, List, Optional

import requests
from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from core.errors import ProviderError
from core.logger import get_logger

logger = get_logger(__name__)

STORE_DOMAIN = os.getenv("SHOPIFY_STORE_DOMAIN", "").strip()
STOREFRONT_TOKEN = os.getenv("SHOPIFY_STOREFRONT_TOKEN", "").strip()
API_VERSION = os.getenv("SHOPIFY_API_VERSION", "2024-01").strip()
TIMEOUT = int(os.getenv("SHOPIFY_TIMEOUT", "30"))
MAX_ATTEMPTS = int(os.getenv("SHOPIFY_MAX_ATTEMPTS", "3"))
RETRY_MAX_WAIT = float(os.getenv("SHOPIFY_RETRY_MAX_WAIT", "10"))
USER_AGENT = os.getenv("STOREFRONT_USER_AGENT", "storefront-catalog/0.1")

# Storefront API caps "first" at 250 per connection page
PAGE_SIZE_LIMIT = 250
MAX_PAGES = int(os.getenv("SHOPIFY_MAX_PAGES", "20"))

PRODUCT_FIELDS = """
fragment ProductFields on Product {
  id
  title
  handle
  description
  priceRange { minVariantPrice { amount currencyCode } }
  featuredImage { url altText }
  images(first: 5) { edges { node { url altText } } }
  variants(first: 10) {
    edges { node { id title availableForSale price { amount currencyCode } } }
  }
}
"""

ARTICLE_FIELDS = """
fragment ArticleFields on Article {
  id
  title
  handle
  excerpt
  contentHtml
  publishedAt
  image { url altText }
  authorV2 { name }
  blog { handle title }
}
"""

PRODUCTS_BY_COLLECTION_QUERY = PRODUCT_FIELDS + """
query ProductsByCollection($handle: String!, $first: Int!, $after: String) {
  collection(handle: $handle) {
    products(first: $first, after: $after) {
      pageInfo { hasNextPage endCursor }
      edges { node { ...ProductFields } }
    }
  }
}
"""

ARTICLES_QUERY = ARTICLE_FIELDS + """
query Articles($first: Int!, $after: String) {
  articles(first: $first, after: $after, sortKey: PUBLISHED_AT, reverse: true) {
    pageInfo { hasNextPage endCursor }
    edges { node { ...ArticleFields } }
  }
}
"""

ARTICLE_BY_HANDLE_QUERY = ARTICLE_FIELDS + """
query ArticleByHandle($blogHandle: String!, $articleHandle: String!) {
  blog(handle: $blogHandle) {
    handle
    title
    articleByHandle(handle: $articleHandle) { ...ArticleFields }
  }
}
"""


class TransientProviderError(ProviderError):
    """Rate limiting or a 5xx; worth another attempt inside the client."""


def _nodes(connection: Any) -> List[Dict[str, Any]]:
    if not isinstance(connection, dict):
        return []
    edges = connection.get("edges") or []
    return [e["node"] for e in edges if isinstance(e, dict) and isinstance(e.get("node"), dict)]


def _flatten_product(node: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(node)
    out["variants"] = _nodes(node.get("variants"))
    out["images"] = _nodes(node.get("images"))
    return out


def _check_limit(limit: int) -> int:
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ValueError(f"limit must be a positive integer, got {limit!r}")
    return limit


class ShopifyStorefrontClient:
    """
    Content provider backed by the Shopify Storefront GraphQL API.

    All public methods raise ProviderError on transport, HTTP, auth or
    GraphQL failures. Connection errors, timeouts, 429 and 5xx responses are
    retried up to max_attempts times before surfacing.
    """

    def __init__(
        self,
        store_domain: str,
        access_token: str,
        api_version: str = API_VERSION,
        session: Optional[requests.Session] = None,
        timeout: int = TIMEOUT,
        max_attempts: int = MAX_ATTEMPTS,
        retry_max_wait: float = RETRY_MAX_WAIT,
    ):
        if not store_domain or not access_token:
            raise ProviderError(
                "Shopify client not configured (SHOPIFY_STORE_DOMAIN/SHOPIFY_STOREFRONT_TOKEN)"
            )
        domain = store_domain.strip().rstrip("/")
        if not domain.startswith(("http://", "https://")):
            domain = f"https://{domain}"
        self.endpoint = f"{domain}/api/{api_version}/graphql.json"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "User-Agent": USER_AGENT,
                "Content-Type": "application/json",
                "Accept": "application/json",
                "X-Shopify-Storefront-Access-Token": access_token,
            }
        )
        self._retrying = Retrying(
            retry=retry_if_exception_type(
                (requests.ConnectionError, requests.Timeout, TransientProviderError)
            ),
            wait=wait_exponential_jitter(initial=1, max=retry_max_wait),
            stop=stop_after_attempt(max(1, max_attempts)),
        )

    @classmethod
    def from_env(cls) -> "ShopifyStorefrontClient":
        return cls(STORE_DOMAIN, STOREFRONT_TOKEN)

    def _post_once(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        resp = self.session.post(
            self.endpoint,
            json={"query": query, "variables": variables},
            timeout=self.timeout,
        )
        status = resp.status_code

        if status == 429 or status >= 500:
            logger.warning("Shopify returned %s at %s; may retry.", status, self.endpoint)
            raise TransientProviderError(f"HTTP {status} from Shopify")
        if status in (401, 403):
            raise ProviderError(f"Shopify rejected the storefront token (HTTP {status})")
        if status != 200:
            raise ProviderError(f"Bad status code {status} from Shopify")

        try:
            body = resp.json()
        except ValueError as exc:
            raise ProviderError("Shopify returned a non-JSON body") from exc

        errors = body.get("errors") if isinstance(body, dict) else None
        if errors:
            codes = {
                (e.get("extensions") or {}).get("code")
                for e in errors
                if isinstance(e, dict)
            }
            messages = "; ".join(
                str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors
            )
            if "THROTTLED" in codes:
                raise TransientProviderError(f"Shopify throttled the request: {messages}")
            raise ProviderError(f"Shopify GraphQL error: {messages}")

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            raise ProviderError("Shopify response has no data object")
        return data

    def _execute(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        try:
            return self._retrying(self._post_once, query, variables)
        except RetryError as e:
            last = e.last_attempt.exception()
            logger.error("Shopify request failed after %d attempts: %s", e.last_attempt.attempt_number, last)
            raise ProviderError(f"Shopify request failed after retries: {last}") from last
        except requests.RequestException as e:
            raise ProviderError(f"Shopify transport error: {e}") from e

    def _paginate(self, query: str, variables: Dict[str, Any], path: List[str], limit: int) -> List[Dict[str, Any]]:
        """Walk a connection found at `path` in the data object until `limit` nodes."""
        nodes: List[Dict[str, Any]] = []
        cursor: Optional[str] = None
        page = 0

        while len(nodes) < limit and page < MAX_PAGES:
            page_vars = dict(variables)
            page_vars["first"] = min(limit - len(nodes), PAGE_SIZE_LIMIT)
            page_vars["after"] = cursor
            data = self._execute(query, page_vars)

            connection: Any = data
            for key in path:
                connection = connection.get(key) if isinstance(connection, dict) else None
            if connection is None:
                logger.info("Shopify returned no %s for %s", "/".join(path), variables)
                break

            batch = _nodes(connection)
            nodes.extend(batch)
            logger.debug("Shopify page %d yielded %d nodes (%d total)", page, len(batch), len(nodes))

            info = connection.get("pageInfo") or {}
            cursor = info.get("endCursor")
            if not batch or not info.get("hasNextPage") or not cursor:
                break
            page += 1

        return nodes[:limit]

    def fetch_products_by_collection(self, collection_handle: str, limit: int) -> List[Dict[str, Any]]:
        _check_limit(limit)
        logger.info("Fetching up to %d products from collection '%s'", limit, collection_handle)
        nodes = self._paginate(
            PRODUCTS_BY_COLLECTION_QUERY,
            {"handle": collection_handle},
            ["collection", "products"],
            limit,
        )
        products = [_flatten_product(n) for n in nodes]
        logger.info("Shopify: found %d products in '%s'", len(products), collection_handle)
        return products

    def fetch_articles(self, limit: int) -> List[Dict[str, Any]]:
        _check_limit(limit)
        logger.info("Fetching up to %d articles", limit)
        articles = self._paginate(ARTICLES_QUERY, {}, ["articles"], limit)
        logger.info("Shopify: found %d articles", len(articles))
        return articles

    def fetch_article_by_handle(self, blog_handle: str, article_handle: str) -> Optional[Dict[str, Any]]:
        logger.info("Fetching article %s/%s", blog_handle, article_handle)
        data = self._execute(
            ARTICLE_BY_HANDLE_QUERY,
            {"blogHandle": blog_handle, "articleHandle": article_handle},
        )
        blog = data.get("blog")
        if not isinstance(blog, dict):
            return None
        article = blog.get("articleByHandle")
        if not isinstance(article, dict):
            return None
        article = dict(article)
        if not article.get("blog"):
            article["blog"] = {"handle": blog.get("handle"), "title": blog.get("title")}
        return article
