# core/models.py
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Tuple

SORT_FEATURED = "featured"
SORT_PRICE_ASC = "price-asc"
SORT_PRICE_DESC = "price-desc"
SORT_TITLE_ASC = "title-asc"
SORT_TITLE_DESC = "title-desc"

SORT_KEYS = (
    SORT_FEATURED,
    SORT_PRICE_ASC,
    SORT_PRICE_DESC,
    SORT_TITLE_ASC,
    SORT_TITLE_DESC,
)


@dataclass(frozen=True)
class Image:
    url: str
    alt_text: Optional[str] = None


@dataclass(frozen=True)
class Product:
    """
    Normalized representation of a catalog product.
    min_price is the lowest variant price as a Decimal, never negative.
    """
    id: str
    title: str
    min_price: Decimal = Decimal("0")
    in_stock: bool = False
    image: Optional[Image] = None
    handle: str = ""
    currency: str = "INR"


@dataclass(frozen=True)
class Article:
    """
    Normalized blog article. published_at is POSIX seconds (UTC) and
    body_html has already been through the sanitizer.
    """
    id: str
    title: str
    handle: str
    blog_handle: str
    blog_title: str
    published_at: float
    body_html: str
    excerpt: Optional[str] = None
    author_name: Optional[str] = None
    image: Optional[Image] = None


@dataclass(frozen=True)
class FilterSpec:
    sort_key: str = SORT_FEATURED
    price_range: Tuple[Decimal, Decimal] = (Decimal("0"), Decimal("1000"))
    only_in_stock: bool = False
