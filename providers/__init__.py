from . import shopify

PROVIDERS = {
    "shopify": shopify.ShopifyStorefrontClient,
}
