"""Unit cost resolution for sold products.

Product variants frequently carry ``standard_price = 0`` while the cost is
maintained on their template. Resolution therefore walks an ordered chain
of strategies for each product:

1. ``variant_cost``: the variant's own non-zero ``standard_price``
2. ``template_cost``: the parent template's non-zero ``standard_price``
3. ``zero_default``: 0.0, reported as a missing cost downstream

Templates are only fetched for variants without a cost, and not at all when
every variant has one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping, Optional, Sequence

from pos_profit.erp.records import RawLine, RawProduct, RawTemplate

logger = logging.getLogger(__name__)

UNCATEGORIZED = "uncategorized"

ProductFetcher = Callable[[Sequence[int]], Iterable[RawProduct]]
TemplateFetcher = Callable[[Sequence[int]], Iterable[RawTemplate]]
CostStrategy = Callable[[RawProduct, Mapping[int, RawTemplate]], Optional[float]]


@dataclass(frozen=True)
class CostInfo:
    """Resolved unit cost and category label of one product."""

    unit_cost: float
    category: str


MISSING_COST = CostInfo(0.0, UNCATEGORIZED)


def variant_cost(product: RawProduct, templates: Mapping[int, RawTemplate]) -> Optional[float]:
    return product.standard_price if product.standard_price > 0 else None


def template_cost(product: RawProduct, templates: Mapping[int, RawTemplate]) -> Optional[float]:
    if product.template is None:
        return None
    template = templates.get(product.template.id)
    if template is None or template.standard_price <= 0:
        return None
    return template.standard_price


def zero_default(product: RawProduct, templates: Mapping[int, RawTemplate]) -> Optional[float]:
    return 0.0


DEFAULT_STRATEGIES: tuple[CostStrategy, ...] = (variant_cost, template_cost, zero_default)


def needs_template(product: RawProduct) -> bool:
    """True when the variant has no usable cost of its own."""
    return product.standard_price <= 0 and product.template is not None


def resolve_product(
    product: RawProduct,
    templates: Mapping[int, RawTemplate],
    strategies: Sequence[CostStrategy] = DEFAULT_STRATEGIES,
) -> CostInfo:
    """Apply the strategy chain to one product."""
    cost = 0.0
    for strategy in strategies:
        found = strategy(product, templates)
        if found is not None:
            cost = max(found, 0.0)
            break
    category = product.category.label_or(UNCATEGORIZED) if product.category else UNCATEGORIZED
    return CostInfo(cost, category)


def resolve(
    lines: Iterable[RawLine],
    fetch_products: ProductFetcher,
    fetch_templates: TemplateFetcher,
    strategies: Sequence[CostStrategy] = DEFAULT_STRATEGIES,
) -> dict[int, CostInfo]:
    """Resolve the unit cost of every product referenced by ``lines``.

    Args:
        lines: Order lines of the current fetch.
        fetch_products: Returns the product rows for a list of product ids.
        fetch_templates: Returns the template rows for a list of template ids.
            Not called when no product needs the template fallback.
        strategies: Ordered cost strategies; the first non-None result wins.

    Returns:
        Mapping product id -> CostInfo, with an entry for every product id
        referenced by ``lines`` (``MISSING_COST`` if the ERP returned none).

    Raises:
        Any exception raised by the fetchers; no partial map is returned.

    """
    product_ids = sorted({line.product.id for line in lines})
    if not product_ids:
        return {}

    products = list(fetch_products(product_ids))
    logger.info("Resolving costs for %d product(s)", len(product_ids))

    retry_ids = sorted({p.template.id for p in products if needs_template(p) and p.template})
    templates: dict[int, RawTemplate] = {}
    if retry_ids:
        logger.info("Falling back to %d template cost(s)", len(retry_ids))
        templates = {t.id: t for t in fetch_templates(retry_ids)}

    costs: dict[int, CostInfo] = {pid: MISSING_COST for pid in product_ids}
    for product in products:
        costs[product.id] = resolve_product(product, templates, strategies)

    missing = sum(1 for info in costs.values() if info.unit_cost <= 0)
    if missing:
        logger.warning("%d product(s) have no cost after template fallback", missing)

    return costs
