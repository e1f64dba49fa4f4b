"""
Glaze recipe rules.

Pure functions: batch number generation, input validation and the
normalised composition shape. No database access.
"""

from __future__ import annotations

import datetime as dt
import random
import string
from typing import Any, Dict, List, Mapping, Optional

from src.database.models.enums import GlazeFinish
from src.modules.shared.exceptions import ValidationError
from src.modules.shared.validators import (
    parse_iso_date,
    validate_choice,
    validate_non_negative,
    validate_required_text,
)

BATCH_SUFFIX_ALPHABET = string.digits + string.ascii_uppercase
BATCH_SUFFIX_LENGTH = 4

# Fields a partial update may touch
UPDATABLE_FIELDS = (
    "name",
    "color",
    "finish",
    "composition",
    "date",
    "batch_number",
    "photos",
    "clay_body_id",
)


def generate_batch_number(
    today: Optional[dt.date] = None,
    rng: Optional[random.Random] = None,
) -> str:
    """``G<yy><mm><dd>-XXXX`` with an upper-case base-36 suffix."""
    today = today or dt.date.today()
    rng = rng or random.Random()
    suffix = "".join(rng.choice(BATCH_SUFFIX_ALPHABET) for _ in range(BATCH_SUFFIX_LENGTH))
    return f"G{today:%y%m%d}-{suffix}"


def normalize_composition(lines: Any) -> List[Dict[str, Any]]:
    """
    Validate composition lines and strip them to ``{name, percentage}``.

    Raises:
        ValidationError: If ``lines`` is not a list or a line is invalid
    """
    if not isinstance(lines, list):
        raise ValidationError("composition", "must be a list of {name, percentage}")

    normalized = []
    for index, line in enumerate(lines):
        if not isinstance(line, Mapping):
            raise ValidationError(f"composition[{index}]", "must be an object")
        validate_required_text(f"composition[{index}].name", line.get("name"))
        validate_non_negative(f"composition[{index}].percentage", line.get("percentage"))
        normalized.append({"name": line["name"].strip(), "percentage": line["percentage"]})
    return normalized


def composition_with_ids(recipe_id: str, lines: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {"id": f"{recipe_id}-{index}", "name": line["name"], "percentage": line["percentage"]}
        for index, line in enumerate(lines or [])
    ]


def validate_new_recipe(data: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Validate a create payload and return column values.

    Raises:
        ValidationError: On the first invalid field
    """
    validate_required_text("name", data.get("name"))
    validate_choice("finish", data.get("finish"), GlazeFinish)

    return {
        "name": data["name"].strip(),
        "color": data.get("color") or "",
        "finish": data["finish"],
        "composition": normalize_composition(data.get("composition", [])),
        "date": parse_iso_date("date", data.get("date") or dt.date.today()),
        "batch_number": data.get("batch_number") or generate_batch_number(),
        "photos": data.get("photos") or None,
        "clay_body_id": data.get("clay_body_id") or None,
    }


def validate_recipe_updates(updates: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Keep only provided (truthy) updatable fields, validated.

    An empty result is allowed; the caller still bumps ``updated_at``.
    """
    values: Dict[str, Any] = {}
    for field in UPDATABLE_FIELDS:
        value = updates.get(field)
        if not value:
            continue
        if field == "name":
            validate_required_text("name", value)
            value = value.strip()
        elif field == "finish":
            validate_choice("finish", value, GlazeFinish)
        elif field == "composition":
            value = normalize_composition(value)
        elif field == "date":
            value = parse_iso_date("date", value)
        values[field] = value
    return values
