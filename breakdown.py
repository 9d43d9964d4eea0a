"""
Cost breakdown for party sheets.

Sums line item totals per category, moves any preloaded drink credit from
food into drinks, and folds per-document breakdowns into combined totals.

"Full Course" packages are listed as one food+drink total; the preloaded
drinks figure is the drink share of it, so it comes out of food (never below
zero) and goes into drinks. Items without a recognized category are left out
of every bucket and reported in dropped_items.
"""

import logging
from typing import Iterable, Optional

from models import EventDetails, LineItem, PartySheetAnalysis, PreloadedDrinks
from portal_data import CATEGORY_BUCKETS, ENTERTAINMENT_BUCKETS, TOTAL_KEYS
from utils import round_cents

logger = logging.getLogger(__name__)


def _empty_totals() -> dict:
    return {key: 0.0 for key in TOTAL_KEYS}


def _rounded(totals: dict) -> dict:
    return {key: round_cents(totals[key]) for key in TOTAL_KEYS}


def calculate_breakdown(line_items: Iterable[LineItem],
                        preloaded_drinks: Optional[PreloadedDrinks] = None,
                        event_details: Optional[EventDetails] = None) -> dict:
    """
    Per-category totals for one party sheet.

    Returns every key in TOTAL_KEYS rounded to cents, plus the line items,
    event details and preloaded drinks it was computed from, and the items
    that had no recognized category.
    """
    line_items = list(line_items)
    totals = _empty_totals()
    dropped = []

    for item in line_items:
        if item.category is None:
            dropped.append(item)
            continue
        totals[CATEGORY_BUCKETS[item.category.value]] += item.total or 0

    if preloaded_drinks is not None and preloaded_drinks.total:
        preloaded = preloaded_drinks.total
        totals["food"] = max(0.0, totals["food"] - preloaded)
        totals["drinks"] += preloaded

    totals["entertainment"] = sum(totals[key] for key in ENTERTAINMENT_BUCKETS)
    totals["grand_total"] = (
        totals["food"] + totals["drinks"] + totals["entertainment"] + totals["booking_fee"]
    )

    if dropped:
        logger.warning(
            "%d line item(s) left out of the breakdown (no recognized category): %s",
            len(dropped), ", ".join(repr(item.description) for item in dropped),
        )

    result = _rounded(totals)
    result.update({
        "line_items": [item.model_dump(mode="json") for item in line_items],
        "event_details": event_details.model_dump(mode="json") if event_details else {},
        "preloaded_drinks": preloaded_drinks.model_dump(mode="json") if preloaded_drinks else None,
        "dropped_items": [item.model_dump(mode="json") for item in dropped],
    })
    return result


def process_cost_breakdown(analysis: PartySheetAnalysis) -> dict:
    """Breakdown for one validated extraction result."""
    return calculate_breakdown(analysis.line_items, analysis.preloaded_drinks, analysis.event_details)


def combine_breakdowns(results: Iterable[dict]) -> dict:
    """
    Sum breakdowns across every successfully processed document.

    Each result is a per-document entry ({"filename", "breakdown"} or
    {"filename", "error"}) or a bare breakdown dict.
    Failed documents are counted, not added as zeros. The entertainment
    figure is rebuilt from the combined subtypes.

    Returns:
        totals: combined figures, rounded to cents
        successful: documents folded into the totals
        failed: documents skipped because processing failed
    """
    totals = _empty_totals()
    successful = 0
    failed = 0

    for result in results:
        breakdown = result["breakdown"] if "breakdown" in result else result
        if result.get("error") or not breakdown:
            failed += 1
            continue
        successful += 1
        for key in TOTAL_KEYS:
            if key != "entertainment":
                totals[key] += breakdown.get(key) or 0

    totals["entertainment"] = sum(totals[key] for key in ENTERTAINMENT_BUCKETS)

    return {"totals": _rounded(totals), "successful": successful, "failed": failed}
