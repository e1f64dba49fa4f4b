"""
Studio data export and import documents.

Pure functions over the export document
``{glaze_recipes, firing_logs, clay_bodies, raw_materials, export_date, user_id}``:
JSON and CSV rendering, and structural validation of a document before it
is imported.
"""

from __future__ import annotations

import csv
import io
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from src.modules.shared.exceptions import ImportFormatError

RECORD_SECTIONS = ("glaze_recipes", "firing_logs", "clay_bodies", "raw_materials")

GLAZE_CSV_HEADERS = (
    "ID",
    "Name",
    "Color",
    "Finish",
    "Date",
    "Batch Number",
    "Clay Body ID",
    "Firing Atmosphere",
    "Created At",
    "Updated At",
)

FIRING_CSV_HEADERS = (
    "ID",
    "Kiln Name",
    "Date",
    "Firing Type",
    "Target Temperature",
    "Actual Temperature",
    "Duration (hours)",
    "Ramp Rate",
    "Notes",
    "Created At",
)


def build_export_document(
    user_id: str,
    glaze_recipes: List[Dict[str, Any]],
    firing_logs: List[Dict[str, Any]],
    clay_bodies: List[Dict[str, Any]],
    raw_materials: List[Dict[str, Any]],
    export_date: Optional[datetime] = None,
) -> Dict[str, Any]:
    export_date = export_date or datetime.now(timezone.utc)
    return {
        "glaze_recipes": glaze_recipes,
        "firing_logs": firing_logs,
        "clay_bodies": clay_bodies,
        "raw_materials": raw_materials,
        "export_date": export_date.isoformat(),
        "user_id": user_id,
    }


def export_to_json(data: Mapping[str, Any]) -> str:
    return json.dumps(data, indent=2)


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


def _render_csv(headers: Sequence[str], rows: List[List[Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows([[_cell(value) for value in row] for row in rows])
    return buffer.getvalue()


def export_to_csv(data: Mapping[str, Any]) -> Dict[str, str]:
    """
    Two CSV documents, every cell quoted.

    Returns ``{"glaze_recipes": ..., "firing_logs": ...}``. Glaze recipes
    have no firing atmosphere, so that column is always empty.
    """
    glaze_rows = [
        [
            recipe.get("id"),
            recipe.get("name"),
            recipe.get("color"),
            recipe.get("finish"),
            recipe.get("date"),
            recipe.get("batch_number"),
            recipe.get("clay_body_id"),
            "",
            recipe.get("created_at"),
            recipe.get("updated_at"),
        ]
        for recipe in data.get("glaze_recipes", [])
    ]
    firing_rows = [
        [
            log.get("id"),
            log.get("kiln_name"),
            log.get("date"),
            log.get("firing_type"),
            log.get("target_temperature"),
            log.get("actual_temperature"),
            log.get("firing_duration_hours"),
            log.get("ramp_rate"),
            log.get("notes") or "",
            log.get("created_at"),
        ]
        for log in data.get("firing_logs", [])
    ]
    return {
        "glaze_recipes": _render_csv(GLAZE_CSV_HEADERS, glaze_rows),
        "firing_logs": _render_csv(FIRING_CSV_HEADERS, firing_rows),
    }


def validate_import_document(payload: Any) -> Dict[str, List[Dict[str, Any]]]:
    """
    Check the document layout and return its record sections.

    Missing sections are treated as empty; present sections must be lists
    of objects.

    Raises:
        ImportFormatError: Listing every structural problem found
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError as exc:
            raise ImportFormatError([f"not valid JSON: {exc}"]) from exc

    if not isinstance(payload, Mapping):
        raise ImportFormatError(["document must be a JSON object"])

    problems: List[str] = []
    sections: Dict[str, List[Dict[str, Any]]] = {}
    for name in RECORD_SECTIONS:
        records = payload.get(name, [])
        if not isinstance(records, list):
            problems.append(f"{name} must be a list")
            continue
        for index, record in enumerate(records):
            if not isinstance(record, Mapping):
                problems.append(f"{name}[{index}] must be an object")
        sections[name] = list(records)

    if not any(name in payload for name in RECORD_SECTIONS):
        problems.append(f"document has none of {', '.join(RECORD_SECTIONS)}")

    if problems:
        raise ImportFormatError(problems)
    return sections
