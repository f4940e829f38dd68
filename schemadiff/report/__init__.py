"""Change-set serialization."""

from schemadiff.report.serializer import (
    deserialize_change_set,
    record_to_dict,
    serialize_change_set,
    validate_change_set_schema,
)

__all__ = [
    "deserialize_change_set",
    "record_to_dict",
    "serialize_change_set",
    "validate_change_set_schema",
]
