import argparse
import asyncio
import os
import sys
from typing import List, Optional

from core.controllers import (
    ArticleController,
    ArticleListController,
    CatalogController,
    FetchState,
)
from core.errors import ProviderError
from core.logger import get_logger
from core.models import SORT_KEYS
from core.report_text import (
    build_article_detail,
    build_article_listing,
    build_catalog_listing,
)
from providers import PROVIDERS

logger = get_logger(__name__)

PROVIDER = os.getenv("STOREFRONT_PROVIDER", "shopify").strip().lower()
COLLECTION = os.getenv("STOREFRONT_COLLECTION", "frontpage")
PRODUCT_LIMIT = int(os.getenv("STOREFRONT_PRODUCT_LIMIT", "50"))
ARTICLE_LIMIT = int(os.getenv("STOREFRONT_ARTICLE_LIMIT", "20"))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Browse storefront products and blog articles from the content provider."
    )
    sub = parser.add_subparsers(dest="command", required=True)

    products = sub.add_parser("products", help="List a collection with filters and sorting")
    products.add_argument("--collection", default=COLLECTION)
    products.add_argument("--limit", type=int, default=PRODUCT_LIMIT)
    products.add_argument("--sort", choices=SORT_KEYS, default="featured")
    products.add_argument("--min-price", default="0")
    products.add_argument("--max-price", default=None)
    products.add_argument("--in-stock", action="store_true", help="Only show purchasable products")

    articles = sub.add_parser("articles", help="List recent blog articles")
    articles.add_argument("--limit", type=int, default=ARTICLE_LIMIT)

    article = sub.add_parser("article", help="Show one article")
    article.add_argument("blog_handle")
    article.add_argument("article_handle")

    return parser


def make_provider():
    provider_cls = PROVIDERS.get(PROVIDER)
    if provider_cls is None:
        logger.error("No provider registered as '%s'.", PROVIDER)
        raise SystemExit(2)
    return provider_cls.from_env()


async def show_products(provider, args: argparse.Namespace) -> int:
    controller = CatalogController(provider, args.collection, args.limit)
    state = await controller.load()
    if state is FetchState.FAILED:
        print("Products are unavailable right now.")
        return 1

    changes = {"sort_key": args.sort, "only_in_stock": args.in_stock}
    if args.max_price is not None:
        changes["price_range"] = (args.min_price, args.max_price)
    elif args.min_price != "0":
        changes["price_range"] = (args.min_price, controller.filter_spec.price_range[1])
    controller.set_filter(**changes)

    sys.stdout.write(
        build_catalog_listing(
            args.collection, controller.view, controller.snapshot, controller.filter_spec
        )
    )
    return 0


async def show_articles(provider, args: argparse.Namespace) -> int:
    controller = ArticleListController(provider, args.limit)
    state = await controller.load()
    if state is FetchState.FAILED:
        print("Blog posts are unavailable right now.")
        return 1
    sys.stdout.write(build_article_listing(controller.articles))
    return 0


async def show_article(provider, args: argparse.Namespace) -> int:
    controller = ArticleController(provider)
    state = await controller.load(args.blog_handle, args.article_handle)
    if state is FetchState.FAILED:
        print("This article could not be loaded.")
        return 1
    if controller.not_found:
        print("Article not found. Back to Blog: /blog")
        return 1
    sys.stdout.write(build_article_detail(controller.article))
    return 0


COMMANDS = {
    "products": show_products,
    "articles": show_articles,
    "article": show_article,
}


def main(argv: Optional[List[str]] = None, provider=None) -> int:
    args = build_parser().parse_args(argv)
    if provider is None:
        try:
            provider = make_provider()
        except ProviderError as e:
            logger.error("Cannot start: %s", e)
            return 2
    try:
        return asyncio.run(COMMANDS[args.command](provider, args))
    except ValueError as e:
        logger.error("Invalid arguments: %s", e)
        return 2


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except Exception as e:
        logger.exception("Fatal storefront error: %s", e)
        raise SystemExit(2)
