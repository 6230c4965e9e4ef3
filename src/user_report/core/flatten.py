from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

KNOWN_METRIC_KEYS = ("Gclid", "yid", "fbc", "fbclid", "utm_source", "utm_campaign")
TRACKING_PREFIX = "utm"
CATCH_ALL_METRIC_KEY = "utm"


def flatten(value: Mapping[str, Any], separator: str = "_", prefix: str = "") -> dict[str, Any]:
    """Collapse nested mappings into a single level, joining keys with ``separator``.

    Non-empty mappings are descended into; every other value, including an
    empty mapping, becomes a leaf under its joined key. Key order follows the
    input's insertion order.
    """
    flat: dict[str, Any] = {}
    for key, item in value.items():
        joined = f"{prefix}{separator}{key}" if prefix else str(key)
        if isinstance(item, Mapping) and item:
            flat.update(flatten(item, separator=separator, prefix=joined))
        else:
            flat[joined] = item
    return flat


def _present(value: Any) -> bool:
    return value is not None and value != ""


def merge_metrics(payloads: Iterable[Mapping[str, Any]]) -> dict[str, Any]:
    """Merge attribution payloads into one flat metrics map.

    Known keys keep the last present value across payloads. Other tracking
    keys are rendered as ``key=value`` lines in the catch-all field.
    """
    known: dict[str, Any] = dict.fromkeys(KNOWN_METRIC_KEYS)
    others: list[str] = []
    for payload in payloads:
        for key in KNOWN_METRIC_KEYS:
            if _present(payload.get(key)):
                known[key] = payload[key]
        for key, item in payload.items():
            if key.startswith(TRACKING_PREFIX) and key not in KNOWN_METRIC_KEYS:
                others.append(f"{key}={item}")

    return {**known, CATCH_ALL_METRIC_KEY: "\n".join(others)}


def strip_wrapping(value: str | None) -> str | None:
    """Drop one leading and one trailing character from a legacy quoted id."""
    if not value:
        return None
    return value[1:-1] or None


def join_answers(answers: Iterable[str] | None) -> str | None:
    if not answers:
        return None
    return ", ".join(str(answer) for answer in answers) or None
