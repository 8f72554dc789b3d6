"""
Product sizing and restock handlers.

Sizing picks a chart by garment category and a size by height band and
fit preference; the model only phrases the recommendation. Restock
checks variant inventory and otherwise subscribes the customer's email.
"""

import logging
import re
from typing import Any, Optional

from support_bot.handlers.common import HandlerContext, Services
from support_bot.prompts.messages import localize
from support_bot.schemas.classification_schema import NOT_FOUND
from support_bot.schemas.commerce_schema import Product
from support_bot.tools.errors import CommerceError

logger = logging.getLogger(__name__)

# Height bands (cm); both bounds belong to the medium band
SMALL_BAND_BELOW_CM = 165
LARGE_BAND_ABOVE_CM = 175

SIZE_CHARTS: dict[str, dict[str, Any]] = {
    "CREWNECK": {
        "productType": "Crewneck",
        "sizes": ["XS", "S", "M", "L", "XL"],
        "measurements": [
            {"name": "Chest", "unit": "cm", "values": {"XS": 64, "S": 67, "M": 70, "L": 73, "XL": 76}},
            {"name": "Length", "unit": "cm", "values": {"XS": 65, "S": 68, "M": 71, "L": 74, "XL": 77}},
            {"name": "Sleeve", "unit": "cm", "values": {"XS": 47, "S": 48, "M": 49, "L": 50, "XL": 51}},
        ],
    },
    "SWEATSHIRT": {
        "productType": "Sweatshirt",
        "sizes": ["S", "M", "L", "XL"],
        "measurements": [
            {"name": "Chest", "unit": "cm", "values": {"S": 67, "M": 69, "L": 71, "XL": 73}},
            {"name": "Length", "unit": "cm", "values": {"S": 65, "M": 68, "L": 71, "XL": 74}},
            {"name": "Sleeve", "unit": "cm", "values": {"S": 58, "M": 60, "L": 62, "XL": 64}},
        ],
    },
    "HOODIE": {
        "productType": "Hoodie",
        "sizes": ["S", "M", "L", "XL"],
        "measurements": [
            {"name": "Chest", "unit": "cm", "values": {"S": 67, "M": 69, "L": 71, "XL": 73}},
            {"name": "Length", "unit": "cm", "values": {"S": 65, "M": 68, "L": 71, "XL": 74}},
            {"name": "Sleeve", "unit": "cm", "values": {"S": 58, "M": 60, "L": 62, "XL": 64}},
        ],
    },
    "POLO": {
        "productType": "Polo",
        "sizes": ["XS", "S", "M", "L", "XL"],
        "measurements": [
            {"name": "Chest", "unit": "cm", "values": {"XS": 64, "S": 66, "M": 68, "L": 70, "XL": 72}},
            {"name": "Length", "unit": "cm", "values": {"XS": 63, "S": 66, "M": 69, "L": 71, "XL": 74}},
            {"name": "Sleeve", "unit": "cm", "values": {"XS": 48, "S": 49, "M": 50, "L": 51, "XL": 52}},
        ],
    },
}

# Checked in order; anything else uses the crewneck chart
CATEGORY_KEYWORDS = ("HOODIE", "SWEATSHIRT", "POLO")
DEFAULT_CATEGORY = "CREWNECK"

FIT_SHIFT = {"tight": -1, "regular": 0, "loose": 1}

FIT_SYNONYMS = {
    "tight": "tight", "fitted": "tight", "slim": "tight", "ajustado": "tight", "ajustada": "tight",
    "ceñido": "tight", "ceñida": "tight",
    "regular": "regular", "normal": "regular", "standard": "regular", "estándar": "regular",
    "loose": "loose", "oversized": "loose", "oversize": "loose", "baggy": "loose", "relaxed": "loose",
    "holgado": "loose", "holgada": "loose", "ancho": "loose", "ancha": "loose",
}

SIZE_TOKENS = {
    "XS": ("xs", "extra small", "extra-small", "x-small", "xsmall", "extra pequeña", "extra pequeño"),
    "S": ("s", "small", "pequeña", "pequeño", "chica", "chico"),
    "M": ("m", "medium", "mediana", "mediano", "media", "medio"),
    "L": ("l", "large", "grande"),
    "XL": ("xl", "extra large", "extra-large", "x-large", "xlarge", "extra grande"),
    "XXL": ("xxl", "2xl", "xx-large", "xxlarge", "double extra large"),
}
_SIZE_LOOKUP = {token: size for size, tokens in SIZE_TOKENS.items() for token in tokens}
_SIZE_PREFIX = re.compile(r"^(talla|size|tamaño)\s+")


def size_chart_for(title: str) -> tuple[str, dict[str, Any]]:
    """Pick the chart whose category keyword appears in ``title``."""
    upper = title.upper()
    for category in CATEGORY_KEYWORDS:
        if category in upper:
            return category, SIZE_CHARTS[category]
    return DEFAULT_CATEGORY, SIZE_CHARTS[DEFAULT_CATEGORY]


def parse_height_cm(raw: str) -> Optional[int]:
    """Read a height in cm from '180', '180 cm', '1.80' or '1,80 m'."""
    match = re.search(r"\d+(?:[.,]\d+)?", raw or "")
    if match is None:
        return None
    value = float(match.group().replace(",", "."))
    if value < 3:
        value *= 100
    if not 50 <= value <= 250:
        return None
    return int(round(value))


def normalize_fit(raw: str) -> Optional[str]:
    return FIT_SYNONYMS.get((raw or "").strip().lower())


def normalize_size(raw: str) -> Optional[str]:
    """Map a size word or abbreviation to XS/S/M/L/XL/XXL."""
    token = _SIZE_PREFIX.sub("", (raw or "").strip().lower()).strip()
    return _SIZE_LOOKUP.get(token)


def recommend_size(sizes: list[str], height_cm: int, fit: str) -> str:
    """Select a size from ``sizes`` by height band, then shift by fit.

    Under 165 cm starts one below the chart's medium entry, 165-175 cm
    inclusive starts at medium, above 175 cm starts one above. Tight
    shifts one down, loose one up; the result is clamped to the chart.
    """
    medium = sizes.index("M") if "M" in sizes else len(sizes) // 2
    if height_cm < SMALL_BAND_BELOW_CM:
        index = medium - 1
    elif height_cm > LARGE_BAND_ABOVE_CM:
        index = medium + 1
    else:
        index = medium
    index += FIT_SHIFT.get(fit, 0)
    index = max(0, min(index, len(sizes) - 1))
    return sizes[index]


def _find_product(services: Services, name: str) -> tuple[Optional[Product], bool]:
    """Return ``(product, lookup_failed)``."""
    try:
        return services.commerce.find_product(name), False
    except CommerceError as exc:
        logger.error("Product lookup for %r failed: %s", name, exc)
        return None, True


def handle_product_sizing(ctx: HandlerContext, services: Services) -> str:
    params = ctx.params
    if not params.product_name:
        return localize("ask_sizing_product", ctx.language)
    if params.product_name == NOT_FOUND:
        return localize("product_not_found", ctx.language)

    product, failed = _find_product(services, params.product_name)
    if failed:
        return localize("product_lookup_failed", ctx.language)
    if product is None:
        return localize("product_not_found", ctx.language)

    height = parse_height_cm(params.height)
    fit = normalize_fit(params.fit)
    if height is None or fit is None:
        lines = [localize("sizing_needs_intro", ctx.language, title=product.title)]
        if height is None:
            lines.append(localize("sizing_needs_height", ctx.language))
        if fit is None:
            lines.append(localize("sizing_needs_fit", ctx.language))
        return "\n".join(lines)

    category, chart = size_chart_for(product.title)
    size = recommend_size(chart["sizes"], height, fit)
    logger.info("Size %s recommended for %s (%s, %dcm, %s)", size, product.title, category, height, fit)

    parameters = params.model_copy(update={
        "product_name": product.title,
        "product_size": size,
        "height": str(height),
        "fit": fit,
    })
    classification = ctx.classification.model_copy(update={"parameters": parameters})
    return services.replies.generate(
        classification, ctx.message, ctx.history,
        size_chart={**chart, "recommendedSize": size},
    )


def handle_restock(ctx: HandlerContext, services: Services) -> str:
    params = ctx.params
    if not params.product_name:
        return localize("ask_restock_product", ctx.language)
    if params.product_name == NOT_FOUND:
        return localize("restock_product_unknown", ctx.language)
    if not params.product_size:
        return localize("ask_restock_size", ctx.language)

    size = None if params.product_size == NOT_FOUND else normalize_size(params.product_size)
    if size is None:
        return localize("restock_size_unknown", ctx.language)

    product, failed = _find_product(services, params.product_name)
    if failed:
        return localize("product_lookup_failed", ctx.language)
    if product is None:
        return localize("restock_product_unknown", ctx.language)

    variant = next(
        (v for v in product.variants
         if v.title.strip().upper() == size or normalize_size(v.title) == size),
        None,
    )
    if variant is None:
        return localize("restock_variant_missing", ctx.language)

    if variant.inventory_quantity > 0:
        link = f"{services.store.storefront_url.rstrip('/')}/products/{product.handle}?variant={variant.id}"
        return localize("restock_available", ctx.language, link=link)

    if not params.email:
        return localize("restock_ask_email", ctx.language)

    try:
        result = services.commerce.create_customer(params.email, note=f"Restock {product.title}")
    except CommerceError as exc:
        logger.error("Restock subscription for %s failed: %s", product.title, exc)
        return localize("email_registration_failed", ctx.language)

    if result.success:
        return localize("restock_subscribed", ctx.language, email=params.email, title=product.title)
    if result.duplicate:
        return localize("email_already_registered", ctx.language)
    return localize("email_registration_failed", ctx.language)
