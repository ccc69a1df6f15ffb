# core/catalog.py
import os
import unicodedata
from decimal import Decimal, InvalidOperation
from typing import Any, List, Sequence, Tuple

from .models import (
    SORT_FEATURED,
    SORT_KEYS,
    SORT_PRICE_ASC,
    SORT_PRICE_DESC,
    SORT_TITLE_ASC,
    SORT_TITLE_DESC,
    FilterSpec,
    Product,
)

# Upper end of the price slider; the default range spans the whole slider
PRICE_CEILING = Decimal(os.getenv("STOREFRONT_PRICE_CEILING", "1000"))
PRICE_STEP = Decimal("10")
CURRENCY_SYMBOL = os.getenv("STOREFRONT_CURRENCY_SYMBOL", "₹")

SORT_LABELS = {
    SORT_FEATURED: "Sort By",
    SORT_PRICE_ASC: "Price: Low to High",
    SORT_PRICE_DESC: "Price: High to Low",
    SORT_TITLE_ASC: "Name: A-Z",
    SORT_TITLE_DESC: "Name: Z-A",
}

_UNSET = object()


def default_filter_spec() -> FilterSpec:
    return FilterSpec(
        sort_key=SORT_FEATURED,
        price_range=(Decimal("0"), PRICE_CEILING),
        only_in_stock=False,
    )


def identity_filter_spec() -> FilterSpec:
    """A spec that filters nothing out and keeps input order."""
    return FilterSpec(
        sort_key=SORT_FEATURED,
        price_range=(Decimal("0"), Decimal("Infinity")),
        only_in_stock=False,
    )


def _coerce_price(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"price bound must be a number, got {value!r}")
    try:
        price = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValueError(f"price bound must be a number, got {value!r}")
    if price.is_nan():
        raise ValueError("price bound must not be NaN")
    return min(max(price, Decimal("0")), PRICE_CEILING)


def make_filter_spec(
    sort_key: str = SORT_FEATURED,
    price_range: Sequence[Any] | None = None,
    only_in_stock: bool = False,
) -> FilterSpec:
    """
    Build a validated FilterSpec.

    Bounds are clamped into [0, PRICE_CEILING]. A range whose min exceeds its
    max is kept as given; derive_view treats it as an empty intersection.
    """
    if sort_key not in SORT_KEYS:
        raise ValueError(
            f"unknown sort key {sort_key!r}; expected one of {', '.join(SORT_KEYS)}"
        )

    if price_range is None:
        bounds = default_filter_spec().price_range
    else:
        if isinstance(price_range, (str, bytes)) or len(price_range) != 2:
            raise ValueError("price_range must be a (min, max) pair")
        bounds = (_coerce_price(price_range[0]), _coerce_price(price_range[1]))

    return FilterSpec(
        sort_key=sort_key,
        price_range=bounds,
        only_in_stock=bool(only_in_stock),
    )


def update_filter_spec(
    spec: FilterSpec,
    sort_key: Any = _UNSET,
    price_range: Any = _UNSET,
    only_in_stock: Any = _UNSET,
) -> FilterSpec:
    """Return a new validated spec with the given fields changed."""
    return make_filter_spec(
        sort_key=spec.sort_key if sort_key is _UNSET else sort_key,
        price_range=spec.price_range if price_range is _UNSET else price_range,
        only_in_stock=spec.only_in_stock if only_in_stock is _UNSET else only_in_stock,
    )


def _title_key(product: Product) -> Tuple[str, str, str]:
    # Approximates locale collation: base letters, then accents, then case
    # with lowercase first.
    title = product.title
    decomposed = unicodedata.normalize("NFKD", title)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return (base.casefold(), title.casefold(), title.swapcase())


def _price_key(product: Product) -> Decimal:
    return product.min_price


def derive_view(products: Sequence[Product], spec: FilterSpec) -> List[Product]:
    """
    Filter by stock, then by price, then sort. Never mutates the input and
    always returns a new list. Sorting is stable in both directions.
    """
    low, high = spec.price_range
    if low > high:
        return []

    view = [p for p in products if p.in_stock] if spec.only_in_stock else list(products)
    view = [p for p in view if low <= p.min_price <= high]

    key = spec.sort_key
    if key == SORT_PRICE_ASC:
        view.sort(key=_price_key)
    elif key == SORT_PRICE_DESC:
        view.sort(key=_price_key, reverse=True)
    elif key == SORT_TITLE_ASC:
        view.sort(key=_title_key)
    elif key == SORT_TITLE_DESC:
        view.sort(key=_title_key, reverse=True)
    # featured and anything unrecognised keep input order

    return view


def is_filter_active(spec: FilterSpec) -> bool:
    low, high = spec.price_range
    return low > 0 or high < PRICE_CEILING or spec.only_in_stock


def sort_label(sort_key: str) -> str:
    return SORT_LABELS.get(sort_key, SORT_LABELS[SORT_TITLE_DESC])


def _fmt_bound(value: Decimal) -> str:
    return f"{value.normalize():f}"


def price_range_label(spec: FilterSpec) -> str:
    low, high = spec.price_range
    upper = f"{CURRENCY_SYMBOL}{_fmt_bound(high)}"
    if high >= PRICE_CEILING:
        upper += "+"
    return f"{CURRENCY_SYMBOL}{_fmt_bound(low)} - {upper}"


def result_summary(view: Sequence[Product], snapshot: Sequence[Product]) -> str:
    text = f"{len(view)} Products"
    if len(view) != len(snapshot):
        text += f" (filtered from {len(snapshot)})"
    return text
