"""Shared fixtures: raw provider records and an in-memory provider."""

import threading
from decimal import Decimal

import pytest

from core.models import Product


class FakeProvider:
    """
    Stands in for the Shopify client. `gates` maps a call key to a
    threading.Event the call waits on, so tests can hold a fetch in flight.
    """

    def __init__(self, products=None, articles=None, by_handle=None, error=None, gates=None):
        self.products = products or []
        self.articles = articles or []
        self.by_handle = by_handle or {}
        self.error = error
        self.gates = gates or {}
        self.calls = []

    def _wait(self, key):
        gate = self.gates.get(key)
        if gate is not None:
            gate.wait(timeout=5)

    def fetch_products_by_collection(self, collection_handle, limit):
        self.calls.append(("products", collection_handle, limit))
        self._wait("products")
        if self.error:
            raise self.error
        return list(self.products)

    def fetch_articles(self, limit):
        self.calls.append(("articles", limit))
        self._wait("articles")
        if self.error:
            raise self.error
        return list(self.articles)

    def fetch_article_by_handle(self, blog_handle, article_handle):
        key = (blog_handle, article_handle)
        self.calls.append(("article",) + key)
        self._wait(key)
        if self.error:
            raise self.error
        return self.by_handle.get(key)


def _raw_product(pid="1", title="Organic Pads", price="499.0", available=True, variants=True):
    raw = {
        "id": f"gid://shopify/Product/{pid}",
        "title": title,
        "handle": title.lower().replace(" ", "-"),
        "priceRange": {"minVariantPrice": {"amount": price, "currencyCode": "INR"}},
        "images": [{"url": f"https://cdn.example.com/{pid}.jpg", "altText": title}],
        "variants": [],
    }
    if variants:
        raw["variants"] = [
            {
                "id": f"gid://shopify/ProductVariant/{pid}",
                "availableForSale": available,
                "price": {"amount": price, "currencyCode": "INR"},
            }
        ]
    return raw


def _raw_article(
    handle="period-care-101",
    blog_handle="news",
    published_at="2025-01-05T00:00:00Z",
    excerpt="",
    content="<p>Everything you need to know.</p>",
):
    return {
        "id": f"gid://shopify/Article/{handle}",
        "title": handle.replace("-", " ").title(),
        "handle": handle,
        "excerpt": excerpt,
        "contentHtml": content,
        "publishedAt": published_at,
        "image": {"url": f"https://cdn.example.com/{handle}.jpg", "altText": None},
        "authorV2": {"name": "Asha"},
        "blog": {"handle": blog_handle, "title": "Wellness"},
    }


def _product(pid, price, in_stock=True, title=None):
    return Product(
        id=str(pid),
        title=title if title is not None else f"Product {pid}",
        min_price=Decimal(str(price)),
        in_stock=in_stock,
    )


@pytest.fixture
def raw_product():
    return _raw_product


@pytest.fixture
def raw_article():
    return _raw_article


@pytest.fixture
def product():
    return _product


@pytest.fixture
def gate():
    event = threading.Event()
    yield event
    # never leave a worker thread blocked past the test
    event.set()
