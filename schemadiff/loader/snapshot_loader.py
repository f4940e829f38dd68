"""Snapshot loader -- read schema trees and rename rules from YAML/JSON files.

A snapshot is a serialised application schema model, typically exported
from a UML tool or produced by an earlier run.  Two layouts are accepted::

    # several schemas
    schemas:
      - id: EAPK_1
        name: Cadastre
        classes: [...]

    # a single schema
    id: EAPK_1
    name: Cadastre
    classes: [...]

Rule files hold a ``rules:`` list of ``{scope, source, target}`` mappings.
JSON is read through the same YAML parser, since it is a YAML subset.

Typical usage::

    reference = load_snapshot(Path("release-1.yaml"))
    rules = load_rules(Path("renames.yaml"))
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from pydantic import ValidationError

from schemadiff.models.options import MapRule
from schemadiff.models.schema import PackageNode

logger = logging.getLogger(__name__)


class SnapshotLoadError(Exception):
    """Raised when a snapshot or rule file cannot be loaded."""


def load_snapshot(path: Path) -> list[PackageNode]:
    """Load the application schemas stored in *path*.

    Parameters
    ----------
    path:
        YAML or JSON snapshot file.

    Returns
    -------
    list[PackageNode]
        One root package per application schema, in file order.

    Raises
    ------
    SnapshotLoadError
        If the file is missing, unparsable, or does not describe schemas.
    """
    data = _read_document(path)
    if isinstance(data, dict) and "schemas" in data:
        raw_schemas = data["schemas"]
    elif isinstance(data, dict):
        raw_schemas = [data]
    else:
        raise SnapshotLoadError(f"{path}: expected a mapping with a 'schemas' list or a single package")

    if not isinstance(raw_schemas, list):
        raise SnapshotLoadError(f"{path}: 'schemas' must be a list")

    schemas: list[PackageNode] = []
    for position, raw in enumerate(raw_schemas):
        try:
            schemas.append(PackageNode.model_validate(raw))
        except ValidationError as exc:
            raise SnapshotLoadError(f"{path}: schema #{position} is invalid: {_first_error(exc)}") from exc

    logger.info("Loaded %d schema(s) from %s", len(schemas), path)
    return schemas


def load_rules(path: Path) -> list[MapRule]:
    """Load rename/relocation rules from *path*.

    An empty file or an empty ``rules`` list yields no rules.  Rules are
    only checked for shape here; :meth:`DiffOptions.validate_rules`
    performs the semantic checks.

    Raises
    ------
    SnapshotLoadError
        If the file is missing, unparsable, or a rule entry is malformed.
    """
    data = _read_document(path)
    if data is None:
        return []
    if not isinstance(data, dict):
        raise SnapshotLoadError(f"{path}: expected a mapping with a 'rules' list")

    raw_rules = data.get("rules") or []
    if not isinstance(raw_rules, list):
        raise SnapshotLoadError(f"{path}: 'rules' must be a list")

    rules: list[MapRule] = []
    for position, raw in enumerate(raw_rules):
        try:
            rules.append(MapRule.model_validate(raw))
        except ValidationError as exc:
            raise SnapshotLoadError(f"{path}: rule #{position} is invalid: {_first_error(exc)}") from exc

    logger.debug("Loaded %d rule(s) from %s", len(rules), path)
    return rules


# ---------------------------------------------------------------------------
# Internals
# ---------------------------------------------------------------------------


def _read_document(path: Path) -> Any:
    if not path.is_file():
        raise SnapshotLoadError(f"File does not exist: {path}")
    try:
        text = path.read_text(encoding="utf-8")
        return yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise SnapshotLoadError(f"Failed to parse {path}: {exc}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise SnapshotLoadError(f"Failed to read {path}: {exc}") from exc


def _first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    loc = ".".join(str(part) for part in err.get("loc", ()))
    return f"{loc}: {err['msg']}" if loc else err["msg"]
