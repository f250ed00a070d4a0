"""JSON export of a sizing study."""

import json
from datetime import datetime, timezone

from equipment import quote_total

NOT_GENERATED = "Not generated"


def build_export_payload(
    sizing_input,
    result,
    quote_items: list = None,
    ai_report: str = None,
    timestamp: datetime = None
) -> dict:
    """Collect inputs, results, quote and narrative into one document."""
    quote_items = quote_items or []
    if timestamp is None:
        timestamp = datetime.now(timezone.utc)

    return {
        "timestamp": timestamp.isoformat(),
        "inputs": sizing_input.to_dict(),
        "results": result.to_dict(),
        "quote": [item.to_dict() for item in quote_items],
        "quoteTotal": quote_total(quote_items),
        "aiAnalysis": ai_report or NOT_GENERATED,
    }


def export_json(sizing_input, result, quote_items: list = None, ai_report: str = None) -> str:
    """Serialise a study as pretty-printed JSON."""
    payload = build_export_payload(sizing_input, result, quote_items, ai_report)
    return json.dumps(payload, indent=2, ensure_ascii=False)


def export_filename(now: datetime = None) -> str:
    now = now or datetime.now()
    return f"solar-calc-report-{int(now.timestamp() * 1000)}.json"
