# core/normalize.py
"""
Map provider-native product and article records into the internal models.

The provider client has already unwrapped GraphQL connections, so a raw
product looks like::

    {
        "id": "gid://shopify/Product/1",
        "title": "Organic Pads",
        "handle": "organic-pads",
        "priceRange": {"minVariantPrice": {"amount": "499.0", "currencyCode": "INR"}},
        "images": [{"url": "...", "altText": "..."}],
        "variants": [{"price": {"amount": "499.0"}, "availableForSale": true}],
    }

Nothing in here performs I/O. Single-record functions raise MalformedRecord;
the batch helpers log and skip such records.
"""
import datetime
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Iterable, List, Optional

import pytz

from .errors import MalformedRecord
from .logger import get_logger
from .models import Article, Image, Product
from .sanitize import sanitize

logger = get_logger(__name__)

EXCERPT_LENGTH = 150
EXCERPT_SUFFIX = "..."
DEFAULT_BLOG_TITLE = "Blog"
DEFAULT_CURRENCY = "INR"

# Naive on purpose: also eats an unterminated trailing "<..." fragment
_TAG_RE = re.compile(r"<[^>]*>?", re.MULTILINE)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _parse_amount(value: Any, record_id: str) -> Decimal:
    if isinstance(value, bool):
        raise MalformedRecord(f"price is not numeric: {value!r}", record_id)
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise MalformedRecord(f"price is not numeric: {value!r}", record_id)
    if not amount.is_finite():
        raise MalformedRecord(f"price is not finite: {value!r}", record_id)
    if amount < 0:
        raise MalformedRecord(f"price is negative: {value!r}", record_id)
    return amount


def _money(node: Any) -> tuple[Any, Optional[str]]:
    """Return (amount, currency) from a MoneyV2 dict or a bare amount."""
    if isinstance(node, dict):
        return node.get("amount"), node.get("currencyCode")
    return node, None


def _image(node: Any) -> Optional[Image]:
    if not isinstance(node, dict):
        return None
    url = _text(node.get("url") or node.get("src"))
    if not url:
        return None
    alt = node.get("altText")
    return Image(url=url, alt_text=_text(alt) or None)


def _first(seq: Any) -> Any:
    if isinstance(seq, list) and seq:
        return seq[0]
    return None


def parse_timestamp(value: Any, record_id: Optional[str] = None) -> float:
    """
    Parse an ISO-8601 provider timestamp into POSIX seconds.
    Naive timestamps are taken as UTC.
    """
    if not isinstance(value, str) or not value.strip():
        raise MalformedRecord(f"missing or non-string date: {value!r}", record_id)
    s = value.strip()
    if s.endswith(("Z", "z")):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.datetime.fromisoformat(s)
    except ValueError:
        raise MalformedRecord(f"unparseable date: {value!r}", record_id)
    if dt.tzinfo is None:
        dt = pytz.UTC.localize(dt)
    return dt.timestamp()


def excerpt_from_html(html: str) -> str:
    """Tag-strip the body, cut to EXCERPT_LENGTH characters and add '...'."""
    stripped = _TAG_RE.sub("", html or "")
    return stripped[:EXCERPT_LENGTH] + EXCERPT_SUFFIX


def normalize_product(raw: Any) -> Product:
    if not isinstance(raw, dict):
        raise MalformedRecord(f"product record is not an object: {type(raw).__name__}")

    product_id = _text(raw.get("id"))
    if not product_id:
        raise MalformedRecord("product has no id")

    variants = raw.get("variants") or []
    if not isinstance(variants, list):
        raise MalformedRecord("variants is not a list", product_id)

    currency = DEFAULT_CURRENCY
    first_variant = _first(variants)
    if not isinstance(first_variant, dict):
        # Draft items may legitimately come back without variants
        min_price = Decimal("0")
        in_stock = False
    else:
        in_stock = bool(first_variant.get("availableForSale"))
        price_range = raw.get("priceRange") or {}
        if not isinstance(price_range, dict):
            raise MalformedRecord("priceRange is not an object", product_id)
        amount, code = _money(price_range.get("minVariantPrice"))
        if amount is None:
            amount, code = _money(first_variant.get("price"))
        min_price = _parse_amount(amount, product_id) if amount is not None else Decimal("0")
        currency = _text(code) or currency

    image = _image(raw.get("featuredImage")) or _image(_first(raw.get("images")))

    return Product(
        id=product_id,
        title=_text(raw.get("title")),
        min_price=min_price,
        in_stock=in_stock,
        image=image,
        handle=_text(raw.get("handle")),
        currency=currency,
    )


def normalize_article(
    raw: Any, sanitizer: Callable[[str], str] = sanitize
) -> Article:
    if not isinstance(raw, dict):
        raise MalformedRecord(f"article record is not an object: {type(raw).__name__}")

    article_id = _text(raw.get("id"))
    if not article_id:
        raise MalformedRecord("article has no id")

    handle = _text(raw.get("handle"))
    blog = raw.get("blog") or {}
    blog_handle = _text(blog.get("handle")) if isinstance(blog, dict) else ""
    if not handle or not blog_handle:
        raise MalformedRecord("article is missing its handle or blog handle", article_id)

    published_at = parse_timestamp(raw.get("publishedAt"), article_id)

    content_html = raw.get("contentHtml") or ""
    if not isinstance(content_html, str):
        raise MalformedRecord("contentHtml is not a string", article_id)

    body_html = sanitizer(content_html)
    # stripped from the provider body as delivered, entities left encoded
    excerpt = _text(raw.get("excerpt")) or excerpt_from_html(content_html)

    author = raw.get("authorV2")
    author_name = _text(author.get("name")) if isinstance(author, dict) else ""

    return Article(
        id=article_id,
        title=_text(raw.get("title")),
        handle=handle,
        blog_handle=blog_handle,
        blog_title=_text(blog.get("title")) or DEFAULT_BLOG_TITLE,
        published_at=published_at,
        body_html=body_html,
        excerpt=excerpt,
        author_name=author_name or None,
        image=_image(raw.get("image")),
    )


def normalize_products(raws: Iterable[Any]) -> List[Product]:
    """
    Normalize a batch, skipping malformed records and repeated ids.
    The first occurrence of an id wins; input order is kept.
    """
    out: List[Product] = []
    seen_ids: set[str] = set()
    for raw in raws:
        try:
            product = normalize_product(raw)
        except MalformedRecord as e:
            logger.warning("Skipping malformed product: %s", e)
            continue
        if product.id in seen_ids:
            logger.warning("Skipping duplicate product id %s", product.id)
            continue
        seen_ids.add(product.id)
        out.append(product)

    logger.debug("Normalized %d products", len(out))
    return out


def normalize_articles(
    raws: Iterable[Any], sanitizer: Callable[[str], str] = sanitize
) -> List[Article]:
    out: List[Article] = []
    seen: set[tuple[str, str]] = set()
    for raw in raws:
        try:
            article = normalize_article(raw, sanitizer)
        except MalformedRecord as e:
            logger.warning("Skipping malformed article: %s", e)
            continue
        key = (article.blog_handle, article.handle)
        if key in seen:
            logger.warning("Skipping duplicate article %s/%s", *key)
            continue
        seen.add(key)
        out.append(article)

    logger.debug("Normalized %d articles", len(out))
    return out
