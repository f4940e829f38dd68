"""Deterministic JSON form of a :class:`ChangeSet`.

Identical change-sets always serialise to byte-identical text (sorted keys,
2-space indentation), so reports of two runs can be compared with a plain
file diff.  Each record additionally carries its rendered ``from``/``to``
text; those keys are derived from the edit script and ignored on load.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from schemadiff.models.diff import ChangeSet, DiffRecord

_DERIVED_KEYS = ("from", "to")


def record_to_dict(record: DiffRecord) -> dict[str, Any]:
    """JSON-ready mapping of one record, including rendered FROM/TO text."""
    raw = record.model_dump(mode="json")
    raw["from"] = record.from_text()
    raw["to"] = record.to_text()
    return raw


def serialize_change_set(change_set: ChangeSet) -> str:
    """Serialize a change-set to a deterministic JSON string.

    Parameters
    ----------
    change_set:
        The change-set to serialize.  Record order is preserved.

    Returns
    -------
    str
        A pretty-printed JSON string with sorted keys.
    """
    raw = {
        "records": [record_to_dict(r) for r in change_set.records],
        "skipped_schemas": list(change_set.skipped_schemas),
        "abandoned_schemas": list(change_set.abandoned_schemas),
    }
    return json.dumps(raw, indent=2, sort_keys=True, ensure_ascii=False)


def deserialize_change_set(json_str: str) -> ChangeSet:
    """Deserialize JSON produced by :func:`serialize_change_set`.

    Raises
    ------
    pydantic.ValidationError
        If the JSON does not conform to the ChangeSet schema.
    ValueError
        If the string is not valid JSON.
    """
    return ChangeSet.model_validate(_strip_derived(json.loads(json_str)))


def validate_change_set_schema(json_str: str) -> list[str]:
    """Validate a JSON string against the ChangeSet schema without raising.

    Returns
    -------
    list[str]
        Human-readable validation errors; empty when the JSON is valid.
    """
    try:
        ChangeSet.model_validate(_strip_derived(json.loads(json_str)))
    except ValidationError as exc:
        return [
            f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}" if err.get("loc") else err["msg"]
            for err in exc.errors()
        ]
    except (ValueError, TypeError) as exc:
        return [f"Invalid JSON: {exc}"]

    return []


def _strip_derived(raw: Any) -> Any:
    if isinstance(raw, dict) and isinstance(raw.get("records"), list):
        raw = dict(raw)
        raw["records"] = [
            {k: v for k, v in rec.items() if k not in _DERIVED_KEYS} if isinstance(rec, dict) else rec
            for rec in raw["records"]
        ]
    return raw
