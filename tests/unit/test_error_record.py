from __future__ import annotations

import json

from qvet_edit.models.error_record import ENTITY_FIELD, ErrorRecord

"""Unit tests for the ErrorRecord model."""


def test_entity_minus_one_for_run_level_errors():
    """entity_id=-1 is kept as-is for records not tied to an article."""
    rec = ErrorRecord.create(
        file="edits.xlsx",
        entity_id=-1,
        field=ENTITY_FIELD,
        error_type="SAVE_FAILED",
        message="browser closed",
    )
    data = json.loads(rec.to_json_line())
    assert data["entity_id"] == -1
    assert data["field"] == "<ENTITY>"
    assert data["timestamp"].endswith("Z")
    assert set(data) == {"timestamp", "file", "entity_id", "field", "error_type", "message"}


def test_section_field_marker():
    assert ErrorRecord.section_field("Almacenes") == "<SECTION:Almacenes>"


def test_json_line_keeps_non_ascii():
    rec = ErrorRecord.create("edits.xlsx", 6242, "Seccion", "FIELD_MUTATION_FAILED", 'value "ALIMENTACIÓN" not found')
    line = rec.to_json_line()
    assert "ALIMENTACIÓN" in line
    assert "\n" not in line
