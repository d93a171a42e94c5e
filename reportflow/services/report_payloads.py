"""
Kind-specific report payloads — field registry, validation and derived totals.

Each kind declares its scalar fields and, for itemised kinds, the item
fields. ``normalize_payload`` checks required fields and numeric types,
fills derived values (occupancy percentage, vacant rooms, revenue and
amount totals) and returns a clean dict. Every problem is collected into
one ValidationError with field-level details.
"""

from __future__ import annotations

from reportflow.core.exceptions import ValidationError
from reportflow.models.report import ReportKind

NUMBER = "number"
INTEGER = "integer"
TEXT = "text"

COMPLAINT_SEVERITIES = ("low", "medium", "high", "critical")
COMPLAINT_RESOLUTION_STATUSES = ("pending", "in_progress", "resolved")

# field name → (type, required)
PAYLOAD_FIELDS: dict[str, dict[str, tuple[str, bool]]] = {
    ReportKind.STOCK: {},
    ReportKind.SALES: {"total_amount": (NUMBER, False)},
    ReportKind.EXPENSE: {"total_amount": (NUMBER, False)},
    ReportKind.OCCUPANCY: {
        "total_rooms": (INTEGER, True),
        "occupied_rooms": (INTEGER, True),
        "maintenance_rooms": (INTEGER, False),
        "vacant_rooms": (INTEGER, False),
        "occupancy_percentage": (NUMBER, False),
    },
    ReportKind.GUEST_ACTIVITY: {
        "check_ins": (INTEGER, True),
        "check_outs": (INTEGER, True),
        "expected_arrivals": (INTEGER, False),
        "expected_departures": (INTEGER, False),
        "walk_ins": (INTEGER, False),
        "no_shows": (INTEGER, False),
    },
    ReportKind.REVENUE: {
        "room_revenue": (NUMBER, True),
        "food_beverage_revenue": (NUMBER, False),
        "laundry_revenue": (NUMBER, False),
        "other_services_revenue": (NUMBER, False),
        "total_revenue": (NUMBER, False),
        "cash_payments": (NUMBER, False),
        "card_payments": (NUMBER, False),
        "transfer_payments": (NUMBER, False),
    },
    ReportKind.COMPLAINT: {
        "complaint_type": (TEXT, True),
        "guest_name": (TEXT, False),
        "room_number": (TEXT, False),
        "description": (TEXT, True),
        "severity": (TEXT, True),
        "resolution_status": (TEXT, False),
        "resolution_details": (TEXT, False),
    },
}

ITEM_FIELDS: dict[str, dict[str, tuple[str, bool]]] = {
    ReportKind.STOCK: {
        "item_name": (TEXT, True),
        "quantity": (NUMBER, True),
        "unit": (TEXT, False),
    },
    ReportKind.SALES: {
        "product_name": (TEXT, True),
        "quantity": (NUMBER, True),
        "unit_price": (NUMBER, True),
        "total_price": (NUMBER, False),
    },
    ReportKind.EXPENSE: {
        "item_name": (TEXT, True),
        "quantity": (NUMBER, True),
        "unit_price": (NUMBER, True),
        "total_price": (NUMBER, False),
        "supplier": (TEXT, False),
    },
}

_REVENUE_COMPONENTS = (
    "room_revenue",
    "food_beverage_revenue",
    "laundry_revenue",
    "other_services_revenue",
)


def _coerce(value, field_type: str):
    """Return the value converted to ``field_type`` or raise ValueError."""
    if field_type == TEXT:
        if not isinstance(value, str):
            raise ValueError("must be a string")
        return value.strip()
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError("must be a number")
    if value < 0:
        raise ValueError("must not be negative")
    if field_type == INTEGER:
        if int(value) != value:
            raise ValueError("must be a whole number")
        return int(value)
    return float(value)


def _check_fields(source: dict, fields: dict, errors: dict, prefix: str = "") -> dict:
    clean = {}
    for name, (field_type, required) in fields.items():
        value = source.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            if required:
                errors[f"{prefix}{name}"] = "required"
            continue
        try:
            clean[name] = _coerce(value, field_type)
        except ValueError as exc:
            errors[f"{prefix}{name}"] = str(exc)
    return clean


def _check_items(kind: str, payload: dict, errors: dict) -> list[dict]:
    items = payload.get("items")
    if not isinstance(items, list) or not items:
        errors["items"] = "at least one item is required"
        return []
    clean_items = []
    for idx, item in enumerate(items):
        if not isinstance(item, dict):
            errors[f"items[{idx}]"] = "must be an object"
            continue
        clean = _check_fields(item, ITEM_FIELDS[kind], errors, prefix=f"items[{idx}].")
        if "unit_price" in ITEM_FIELDS[kind] and "quantity" in clean and "unit_price" in clean:
            clean.setdefault("total_price", clean["quantity"] * clean["unit_price"])
        clean_items.append(clean)
    return clean_items


def normalize_payload(kind: str, payload) -> dict:
    """Validate and complete a payload for ``kind``.

    Raises:
        ValidationError: with ``details`` keyed by field path.
    """
    if kind not in PAYLOAD_FIELDS:
        raise ValidationError(f"Unknown report kind: {kind}", details={"kind": "unknown"})
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("payload must be an object", details={"payload": "must be an object"})

    errors: dict[str, str] = {}
    clean = _check_fields(payload, PAYLOAD_FIELDS[kind], errors)

    if kind in ITEM_FIELDS:
        clean["items"] = _check_items(kind, payload, errors)
        if "total_amount" in PAYLOAD_FIELDS[kind] and "total_amount" not in clean:
            clean["total_amount"] = sum(i.get("total_price", 0) for i in clean["items"])

    if kind == ReportKind.OCCUPANCY and "total_rooms" in clean and "occupied_rooms" in clean:
        total = clean["total_rooms"]
        occupied = clean["occupied_rooms"]
        maintenance = clean.setdefault("maintenance_rooms", 0)
        if total == 0:
            errors["total_rooms"] = "must be greater than zero"
        elif occupied + maintenance > total:
            errors["occupied_rooms"] = "occupied + maintenance rooms exceed total rooms"
        else:
            clean.setdefault("vacant_rooms", max(0, total - occupied - maintenance))
            clean.setdefault("occupancy_percentage", round(occupied / total * 100, 2))

    if kind == ReportKind.REVENUE:
        for name in _REVENUE_COMPONENTS:
            clean.setdefault(name, 0.0)
        clean.setdefault("total_revenue", sum(clean[name] for name in _REVENUE_COMPONENTS))

    if kind == ReportKind.COMPLAINT:
        if clean.get("severity") and clean["severity"] not in COMPLAINT_SEVERITIES:
            errors["severity"] = f"must be one of: {', '.join(COMPLAINT_SEVERITIES)}"
        status = clean.setdefault("resolution_status", "pending")
        if status not in COMPLAINT_RESOLUTION_STATUSES:
            errors["resolution_status"] = f"must be one of: {', '.join(COMPLAINT_RESOLUTION_STATUSES)}"
        elif status == "resolved" and not clean.get("resolution_details"):
            errors["resolution_details"] = "required"

    if errors:
        raise ValidationError(f"Invalid {kind} report payload", details=errors)
    return clean
