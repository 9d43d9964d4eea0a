"""
Report generation. Two outputs per run:
  1. Structured JSON payload (also the HTTP response body)
  2. Human-readable report
"""

import json
import os

from portal_data import ENTERTAINMENT_BUCKETS

_LABELS = {
    "food": "Food",
    "drinks": "Drinks",
    "bowling": "Bowling",
    "darts": "Darts",
    "mini_golf": "Mini Golf",
    "shuffleboard": "Shuffleboard",
    "karaoke": "Karaoke",
    "other_entertainment": "Other Entertainment",
    "entertainment": "Entertainment (all)",
    "booking_fee": "Booking Fee",
    "grand_total": "Grand Total",
}


def build_upload_payload(results: list[dict], combined: dict) -> dict:
    """Build the party-sheet response: per-file results plus combined totals."""
    return {
        "success": True,
        "results": results,
        "combined_totals": combined["totals"],
        "summary": {
            "total_files": len(results),
            "successful": combined["successful"],
            "failed": combined["failed"],
        },
    }


def build_vendor_cost_payload(aggregation: dict, reference_products_count: int,
                              total_data_points: int, failed_files: list[dict] | None = None) -> dict:
    """Build the vendor-cost response from an aggregate_prices() result."""
    stats = aggregation["stats"]
    return {
        "success": True,
        "products": aggregation["series"],
        "unmatched_items": aggregation["unmatched"],
        "summary": {
            "reference_products_count": reference_products_count,
            "matched_products_count": len(aggregation["series"]),
            "total_data_points": total_data_points,
            "matched_data_points": stats["matched"],
            "unmatched_data_points": stats["unmatched"],
            "mapped_from_sheet": stats["mapped"],
            "fuzzy_matched": stats["fuzzy_matched"],
            "failed_files": failed_files or [],
        },
    }


def _totals_lines(totals: dict) -> list[str]:
    lines = []
    for key in ("food", "drinks", *ENTERTAINMENT_BUCKETS, "entertainment", "booking_fee"):
        value = totals.get(key) or 0
        if key in ENTERTAINMENT_BUCKETS and not value:
            continue
        indent = "    " if key in ENTERTAINMENT_BUCKETS else "  "
        lines.append(f"{indent}{_LABELS[key] + ':':<22} ${value:>10,.2f}")
    lines.append(f"  {'-' * 34}")
    lines.append(f"  {_LABELS['grand_total'] + ':':<22} ${totals.get('grand_total') or 0:>10,.2f}")
    return lines


def build_cost_report(payload: dict) -> str:
    """Build a human-readable cost breakdown report for a party-sheet batch."""
    lines = []
    sep = "=" * 72

    lines.append(sep)
    lines.append("  PARTY SHEET COST BREAKDOWN")
    lines.append(sep)

    for result in payload["results"]:
        lines.append("")
        lines.append("-" * 72)
        lines.append(f"  {result['filename']}")
        lines.append("-" * 72)

        if result.get("error"):
            lines.append(f"  !! FAILED: {result['error']}")
            continue

        breakdown = result["breakdown"]
        event = breakdown.get("event_details") or {}
        if event.get("event_name"):
            lines.append(f"  Event:    {event['event_name']}")
        if event.get("date") or event.get("time"):
            lines.append(f"  When:     {event.get('date') or ''} {event.get('time') or ''}".rstrip())
        if event.get("guests"):
            lines.append(f"  Guests:   {event['guests']}")

        lines.append("")
        lines.append(f"  {'Item':<34} {'Qty':>6} {'Total':>11}  {'Category'}")
        lines.append(f"  {'-'*34} {'-'*6} {'-'*11}  {'-'*16}")
        for item in breakdown["line_items"]:
            qty = item.get("quantity")
            total = item.get("total") or 0
            category = item.get("category") or f"? {item.get('raw_category') or 'NONE'}"
            lines.append(f"  {(item.get('description') or '?')[:34]:<34} "
                         f"{'' if qty is None else f'{qty:g}':>6} ${total:>10,.2f}  {category}")

        preloaded = breakdown.get("preloaded_drinks")
        if preloaded and preloaded.get("total"):
            lines.append("")
            lines.append(f"  Preloaded drinks: ${preloaded['total']:,.2f} moved from food to drinks")
        if breakdown.get("dropped_items"):
            lines.append(f"  Left out (no recognized category): {len(breakdown['dropped_items'])} item(s)")

        lines.append("")
        lines.extend(_totals_lines(breakdown))

    summary = payload["summary"]
    lines.append("")
    lines.append(sep)
    lines.append(f"  COMBINED TOTALS ({summary['successful']} of {summary['total_files']} file(s)"
                 f"{', ' + str(summary['failed']) + ' failed' if summary['failed'] else ''})")
    lines.append(sep)
    lines.extend(_totals_lines(payload["combined_totals"]))
    lines.append("")
    lines.append(sep)
    return "\n".join(lines)


def build_price_report(payload: dict) -> str:
    """Build a human-readable vendor price report."""
    lines = []
    sep = "=" * 72
    summary = payload["summary"]

    lines.append(sep)
    lines.append("  VENDOR COST REPORT")
    lines.append(sep)
    lines.append("")
    lines.append(f"  Reference products:  {summary['reference_products_count']}")
    lines.append(f"  Data points:         {summary['total_data_points']}")
    lines.append(f"  Matched:             {summary['matched_data_points']} "
                 f"({summary['mapped_from_sheet']} from mapping sheet, {summary['fuzzy_matched']} fuzzy)")
    lines.append(f"  Unmatched:           {summary['unmatched_data_points']}")
    lines.append("")

    lines.append("-" * 72)
    lines.append("  PRICE SUMMARY")
    lines.append("-" * 72)
    lines.append(f"  {'Product':<30} {'Points':>6} {'Average':>10} {'Recent':>10} {'Change':>9}")
    lines.append(f"  {'-'*30} {'-'*6} {'-'*10} {'-'*10} {'-'*9}")
    for product in payload["products"]:
        recent = product["most_recent_price"]
        change = product["percent_change"]
        lines.append(
            f"  {product['product_name'][:30]:<30} {product['data_points']:>6} "
            f"{'$' + format(product['average_price'], ',.2f'):>10} "
            f"{'N/A' if recent is None else '$' + format(recent, ',.2f'):>10} "
            f"{'N/A' if change is None else format(change, '+.2f') + '%':>9}"
        )

    if payload["unmatched_items"]:
        lines.append("")
        lines.append("-" * 72)
        shown = len(payload["unmatched_items"])
        lines.append(f"  UNMATCHED ITEMS (showing {shown} of {summary['unmatched_data_points']})")
        lines.append("-" * 72)
        for item in payload["unmatched_items"]:
            lines.append(f"  - {item['product_name']} (${item['price']:,.2f}, {item['date']}, {item['source_file']})")

    if summary["failed_files"]:
        lines.append("")
        lines.append("-" * 72)
        lines.append("  FILES THAT COULD NOT BE READ")
        lines.append("-" * 72)
        for failed in summary["failed_files"]:
            lines.append(f"  !! {failed['filename']}: {failed['error']}")

    lines.append("")
    lines.append(sep)
    return "\n".join(lines)


def save_outputs(name: str, json_payload: dict, report: str, output_dir: str = "output"):
    """Save the JSON payload and the text report."""
    os.makedirs(output_dir, exist_ok=True)

    base = os.path.join(output_dir, name)

    with open(f"{base}.json", "w") as f:
        json.dump(json_payload, f, indent=2)

    with open(f"{base}_report.txt", "w") as f:
        f.write(report)

    print(f"  Saved: {base}.json")
    print(f"  Saved: {base}_report.txt")
