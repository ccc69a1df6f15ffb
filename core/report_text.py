# core/report_text.py
from decimal import Decimal
from pathlib import Path
from typing import Sequence

from bs4 import BeautifulSoup
from jinja2 import Environment, FileSystemLoader, StrictUndefined

from core.blog import format_published, image_alt
from core.catalog import is_filter_active, price_range_label, result_summary, sort_label
from core.models import Article, FilterSpec, Product

# Resolve template directory relative to this file
TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"
env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    undefined=StrictUndefined,
)

CURRENCY_SYMBOLS = {"INR": "₹", "USD": "$", "EUR": "€", "GBP": "£"}


def _price_to_str(amount: Decimal, currency: str = "INR") -> str:
    sym = CURRENCY_SYMBOLS.get(currency)
    if sym is None:
        return f"{amount:.2f} {currency}"
    return f"{sym}{amount:.2f}"


def _html_to_text(html: str) -> str:
    return BeautifulSoup(html or "", "html.parser").get_text("\n", strip=True)


def build_catalog_listing(
    collection: str,
    view: Sequence[Product],
    snapshot: Sequence[Product],
    spec: FilterSpec,
) -> str:
    template = env.get_template("catalog.txt")

    rows = [
        {
            "title": p.title,
            "price_str": _price_to_str(p.min_price, p.currency),
            "stock_str": "in stock" if p.in_stock else "sold out",
            "handle": p.handle,
        }
        for p in view
    ]

    ctx = {
        "collection": collection,
        "summary": result_summary(view, snapshot),
        "sort_label": sort_label(spec.sort_key),
        "price_label": price_range_label(spec),
        "only_in_stock": spec.only_in_stock,
        "filter_active": is_filter_active(spec),
        "products": rows,
    }
    return template.render(**ctx)


def build_article_listing(articles: Sequence[Article]) -> str:
    template = env.get_template("articles.txt")
    rows = [
        {
            "title": a.title,
            "blog_title": a.blog_title,
            "path": f"{a.blog_handle}/{a.handle}",
            "date_str": format_published(a),
            "author": a.author_name,
            "excerpt": a.excerpt,
        }
        for a in articles
    ]
    return template.render(articles=rows)


def build_article_detail(article: Article) -> str:
    template = env.get_template("article.txt")
    ctx = {
        "title": article.title,
        "blog_title": article.blog_title,
        "date_str": format_published(article),
        "author": article.author_name,
        "excerpt": article.excerpt,
        "image_url": article.image.url if article.image else "",
        "image_alt": image_alt(article.image, article.title),
        "body_text": _html_to_text(article.body_html),
    }
    return template.render(**ctx)
