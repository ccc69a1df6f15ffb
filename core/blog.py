# core/blog.py
import datetime
import os
from typing import Iterable, List, Optional

import pytz

from .models import Article, Image

DISPLAY_TZ = pytz.timezone(os.getenv("STOREFRONT_TIMEZONE", "UTC"))
SITE_NAME = os.getenv("STOREFRONT_SITE_NAME", "Chumz Blog")


def published_datetime(article: Article) -> datetime.datetime:
    return datetime.datetime.fromtimestamp(article.published_at, tz=pytz.UTC).astimezone(DISPLAY_TZ)


def format_published(article: Article) -> str:
    """e.g. 'January 05, 2025' in STOREFRONT_TIMEZONE."""
    return published_datetime(article).strftime("%B %d, %Y")


def meta_description(article: Article, site_name: str = SITE_NAME) -> str:
    return article.excerpt or f"Read {article.title} on {site_name}."


def page_title(article: Article, site_name: str = SITE_NAME) -> str:
    return f"{article.title} | {site_name}"


def image_alt(image: Optional[Image], title: str) -> str:
    if image is None:
        return title
    return image.alt_text or title


def newest_first(articles: Iterable[Article]) -> List[Article]:
    # published_at ties keep provider order
    return sorted(articles, key=lambda a: a.published_at, reverse=True)
