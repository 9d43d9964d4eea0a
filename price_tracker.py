"""
Vendor price tracking.

Matches every vendor price observation to a reference product, groups the
matches per product, and summarizes each group as a dated price history with
average, most recent price and the most recent price's deviation from the
average.

Everything is recomputed from the observations on each call. Rounding to
cents (ties away from zero) happens only when the output dicts are built.
Series come out ordered by product name compared case-insensitively; the
exact name breaks ties.
"""

import logging
from typing import Iterable, Mapping, Sequence

from matcher import DEFAULT_CONFIG, MatchConfig, resolve_product
from models import PriceObservation
from portal_data import UNMATCHED_ITEMS_LIMIT
from utils import round_cents

logger = logging.getLogger(__name__)


def _summarize_series(product_name: str, history: list[dict]) -> dict:
    """
    Summarize one product's observations into a price series.

    Returns:
        product_name: canonical reference name
        price_history: observations sorted by date (oldest first)
        average_price / most_recent_price / percent_change: rounded to cents
        data_points: number of observations
    """
    history = sorted(history, key=lambda point: point["date"])
    prices = [point["price"] for point in history]

    average_price = sum(prices) / len(prices) if prices else 0
    most_recent_price = prices[-1] if prices else None

    percent_change = None
    if most_recent_price is not None and average_price:
        percent_change = (most_recent_price - average_price) / average_price * 100

    return {
        "product_name": product_name,
        "price_history": [
            {
                "date": point["date"].isoformat(),
                "price": round_cents(point["price"]),
                "source_file": point["source_file"],
            }
            for point in history
        ],
        "average_price": round_cents(average_price),
        "most_recent_price": round_cents(most_recent_price) if most_recent_price is not None else None,
        "percent_change": round_cents(percent_change) if percent_change is not None else None,
        "data_points": len(history),
    }


def _unmatched_entry(observation: PriceObservation) -> dict:
    return {
        "product_name": observation.product_name,
        "price": round_cents(observation.unit_price),
        "date": observation.date.isoformat(),
        "source_file": observation.source_file,
    }


def aggregate_prices(observations: Iterable[PriceObservation], reference_products: Sequence[str],
                     mapping: Mapping[str, str] | None = None,
                     config: MatchConfig = DEFAULT_CONFIG,
                     unmatched_limit: int = UNMATCHED_ITEMS_LIMIT) -> dict:
    """
    Match observations to reference products and build per-product series.

    Returns:
        series: one summary per matched product, sorted by product name
                (case-insensitive)
        unmatched: the first `unmatched_limit` observations with no match
        stats: matched / mapped / fuzzy_matched / unmatched counts (full counts)
    """
    groups: dict[str, list[dict]] = {}
    unmatched = []
    stats = {"matched": 0, "mapped": 0, "fuzzy_matched": 0, "unmatched": 0}

    for observation in observations:
        match = resolve_product(observation.product_name, reference_products, mapping, config)
        canonical = match["canonical_name"]

        if canonical is None:
            stats["unmatched"] += 1
            unmatched.append(observation)
            logger.debug("No match found for %r (from %s)", observation.product_name, observation.source_file)
            continue

        if match["match_type"] == "mapped":
            stats["mapped"] += 1
            logger.debug("Mapped %r -> %r", observation.product_name, canonical)
        else:
            stats["fuzzy_matched"] += 1
        stats["matched"] += 1

        groups.setdefault(canonical, []).append({
            "date": observation.date,
            "price": observation.unit_price,
            "source_file": observation.source_file,
        })

    series = [_summarize_series(name, history) for name, history in groups.items()]
    series.sort(key=lambda s: (s["product_name"].casefold(), s["product_name"]))

    logger.info(
        "Matching statistics: %d matched (%d from mapping sheet, %d fuzzy), %d unmatched",
        stats["matched"], stats["mapped"], stats["fuzzy_matched"], stats["unmatched"],
    )
    if unmatched:
        unique_names = sorted({o.product_name for o in unmatched})
        logger.info("Unmatched product names (%d unique): %s", len(unique_names), ", ".join(unique_names[:20]))

    return {
        "series": series,
        "unmatched": [_unmatched_entry(o) for o in unmatched[:unmatched_limit]],
        "stats": stats,
    }
