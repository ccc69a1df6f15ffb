import logging
from decimal import Decimal

import pytest

from core.errors import MalformedRecord
from core.models import Image
from core.normalize import (
    excerpt_from_html,
    normalize_article,
    normalize_articles,
    normalize_product,
    normalize_products,
    parse_timestamp,
)


# --- products ---------------------------------------------------------------


def test_product_fields(raw_product):
    p = normalize_product(raw_product(pid="7", title="Organic Pads", price="499.00"))
    assert p.id == "gid://shopify/Product/7"
    assert p.title == "Organic Pads"
    assert p.min_price == Decimal("499.00")
    assert p.in_stock is True
    assert p.handle == "organic-pads"
    assert p.currency == "INR"
    assert p.image == Image(url="https://cdn.example.com/7.jpg", alt_text="Organic Pads")


def test_product_without_variants_is_not_purchasable(raw_product):
    p = normalize_product(raw_product(price="250.0", variants=False))
    assert p.in_stock is False
    assert p.min_price == Decimal("0")


def test_stock_comes_from_first_variant(raw_product):
    raw = raw_product(available=False)
    raw["variants"].append({"availableForSale": True, "price": {"amount": "10.0"}})
    assert normalize_product(raw).in_stock is False


def test_price_falls_back_to_first_variant(raw_product):
    raw = raw_product(price="120.50")
    del raw["priceRange"]
    assert normalize_product(raw).min_price == Decimal("120.50")


def test_featured_image_preferred_over_gallery(raw_product):
    raw = raw_product()
    raw["featuredImage"] = {"url": "https://cdn.example.com/hero.jpg", "altText": ""}
    assert normalize_product(raw).image == Image(url="https://cdn.example.com/hero.jpg")


def test_product_without_image(raw_product):
    raw = raw_product()
    raw["images"] = []
    assert normalize_product(raw).image is None


@pytest.mark.parametrize("price", ["free", "-1.00", "NaN", "Infinity"])
def test_bad_price_is_malformed(raw_product, price):
    with pytest.raises(MalformedRecord):
        normalize_product(raw_product(price=price))


@pytest.mark.parametrize("price_range", ["499", [1], 7])
def test_non_object_price_range_is_malformed(raw_product, price_range):
    raw = raw_product()
    raw["priceRange"] = price_range
    with pytest.raises(MalformedRecord):
        normalize_product(raw)


def test_non_object_variant_price_is_malformed(raw_product):
    raw = raw_product()
    del raw["priceRange"]
    raw["variants"][0]["price"] = ["499"]
    with pytest.raises(MalformedRecord):
        normalize_product(raw)


def test_missing_id_is_malformed(raw_product):
    raw = raw_product()
    raw["id"] = None
    with pytest.raises(MalformedRecord):
        normalize_product(raw)


def test_non_dict_product_is_malformed():
    with pytest.raises(MalformedRecord):
        normalize_product(["not", "a", "record"])


def test_batch_skips_bad_records_and_duplicates(raw_product, caplog):
    raws = [
        raw_product(pid="1"),
        raw_product(pid="2", price="oops"),
        raw_product(pid="3"),
        raw_product(pid="1", title="Again"),
    ]
    with caplog.at_level(logging.WARNING):
        products = normalize_products(raws)

    assert [p.id for p in products] == ["gid://shopify/Product/1", "gid://shopify/Product/3"]
    assert products[0].title == "Organic Pads"
    assert "Skipping malformed product" in caplog.text
    assert "Skipping duplicate product id" in caplog.text


def test_batch_skips_product_with_non_object_price_range(raw_product):
    bad = raw_product(pid="2")
    bad["priceRange"] = "499"
    products = normalize_products([raw_product(pid="1"), bad])
    assert [p.id for p in products] == ["gid://shopify/Product/1"]


# --- articles ---------------------------------------------------------------


def test_article_fields(raw_article):
    a = normalize_article(raw_article(excerpt="Short and sweet."))
    assert a.id == "gid://shopify/Article/period-care-101"
    assert a.handle == "period-care-101"
    assert a.blog_handle == "news"
    assert a.blog_title == "Wellness"
    assert a.author_name == "Asha"
    assert a.excerpt == "Short and sweet."
    assert a.published_at == 1736035200.0
    assert a.image == Image(url="https://cdn.example.com/period-care-101.jpg")


def test_unparseable_date_is_malformed(raw_article):
    with pytest.raises(MalformedRecord):
        normalize_article(raw_article(published_at="last tuesday"))


def test_missing_date_is_malformed(raw_article):
    raw = raw_article()
    del raw["publishedAt"]
    with pytest.raises(MalformedRecord):
        normalize_article(raw)


def test_valid_dates_compare_chronologically(raw_article):
    older = normalize_article(raw_article(handle="a", published_at="2024-03-01T09:30:00Z"))
    newer = normalize_article(raw_article(handle="b", published_at="2024-03-01T10:00:00+00:00"))
    assert isinstance(older.published_at, float)
    assert older.published_at < newer.published_at


def test_parse_timestamp_variants():
    assert parse_timestamp("2024-01-01T00:00:00Z") == 1704067200.0
    assert parse_timestamp("2024-01-01T05:30:00+05:30") == 1704067200.0
    # naive timestamps are read as UTC
    assert parse_timestamp("2024-01-01T00:00:00") == 1704067200.0


def test_excerpt_falls_back_to_stripped_body(raw_article):
    a = normalize_article(raw_article(content="<p>Hello <b>world</b></p>"))
    assert a.excerpt == "Hello world..."


def test_excerpt_fallback_truncates_to_150_chars():
    body = "<div>" + "x" * 200 + "</div>"
    assert excerpt_from_html(body) == "x" * 150 + "..."


def test_excerpt_fallback_eats_unterminated_tag():
    assert excerpt_from_html("<p>abc<b") == "abc..."


def test_excerpt_fallback_keeps_entities_verbatim():
    assert excerpt_from_html("<p>Fish &amp; chips</p>") == "Fish &amp; chips..."


def test_excerpt_fallback_uses_body_as_delivered(raw_article):
    a = normalize_article(
        raw_article(content="<p>Caf&eacute; &mdash; it&#8217;s &nbsp;here</p> <b")
    )
    assert a.excerpt == "Caf&eacute; &mdash; it&#8217;s &nbsp;here ..."
    assert "&lt;" not in a.excerpt


def test_body_is_sanitized(raw_article):
    a = normalize_article(
        raw_article(content='<p onclick="steal()">Hi</p><script>alert(1)</script>')
    )
    assert a.body_html == "<p>Hi</p>"


def test_custom_sanitizer_is_called_once(raw_article):
    seen = []

    def fake_sanitizer(html):
        seen.append(html)
        return "clean"

    a = normalize_article(raw_article(content="<p>x</p>"), sanitizer=fake_sanitizer)
    assert a.body_html == "clean"
    assert seen == ["<p>x</p>"]


def test_blog_title_defaults(raw_article):
    raw = raw_article()
    raw["blog"] = {"handle": "news", "title": None}
    assert normalize_article(raw).blog_title == "Blog"


def test_missing_blog_handle_is_malformed(raw_article):
    raw = raw_article()
    raw["blog"] = None
    with pytest.raises(MalformedRecord):
        normalize_article(raw)


def test_missing_author_is_none(raw_article):
    raw = raw_article()
    raw["authorV2"] = None
    assert normalize_article(raw).author_name is None


def test_article_batch_skips_bad_dates(raw_article, caplog):
    raws = [
        raw_article(handle="a"),
        raw_article(handle="b", published_at="2024-13-45"),
        raw_article(handle="c"),
    ]
    with caplog.at_level(logging.WARNING):
        articles = normalize_articles(raws)

    assert [a.handle for a in articles] == ["a", "c"]
    assert "Skipping malformed article" in caplog.text
