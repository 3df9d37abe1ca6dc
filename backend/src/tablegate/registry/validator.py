"""
registry/validator.py: JSON Schema validation for table definition YAML files.

Usage:
    from tablegate.registry.validator import validate_metadata_dir, validate_yaml_file

    issues = validate_metadata_dir(Path("metadata"))
    for issue in issues:
        print(issue)

Besides the schema itself, a few semantic checks produce warnings, e.g. a
searchable field that is not a string (LIKE against numbers rarely does what
the caller expects).
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

logger = logging.getLogger(__name__)

_SCHEMAS_DIR = Path(__file__).parent / "schemas"
TABLE_SCHEMA = "table.schema.json"


@dataclass
class ValidationIssue:
    """A single validation finding for a table YAML file."""

    file: Path
    message: str
    path: str = ""          # location within the document, e.g. "fields[2]/type"
    severity: str = "error" # "error" | "warning"

    def __str__(self) -> str:
        loc = f" at {self.path}" if self.path else ""
        return f"[{self.severity.upper()}] {self.file}{loc}: {self.message}"


def _load_schema(name: str) -> dict[str, Any]:
    schema_path = _SCHEMAS_DIR / name
    with schema_path.open() as fh:
        return json.load(fh)


def _json_path(error: ValidationError) -> str:
    """Convert a jsonschema ValidationError path to a readable string."""
    parts = []
    for p in error.absolute_path:
        if isinstance(p, int):
            parts.append(f"[{p}]")
        else:
            parts.append(str(p))
    return "/".join(parts).replace("/[", "[")


def _semantic_issues(yaml_path: Path, doc: dict[str, Any]) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    fields = doc.get("fields") or []
    names = [f.get("name") for f in fields if isinstance(f, dict)]

    for ref_key in ("primaryKey", "ownerField"):
        ref = doc.get(ref_key)
        if ref and ref not in names:
            issues.append(
                ValidationIssue(
                    file=yaml_path,
                    message=f"{ref_key} '{ref}' is not a declared field",
                    path=ref_key,
                )
            )

    seen: set[str] = set()
    for i, f in enumerate(fields):
        if not isinstance(f, dict):
            continue
        name = f.get("name")
        if name in seen:
            issues.append(
                ValidationIssue(
                    file=yaml_path,
                    message=f"Field '{name}' is declared more than once",
                    path=f"fields[{i}]",
                )
            )
        seen.add(name)
        if f.get("searchable") and f.get("type", "string") != "string":
            issues.append(
                ValidationIssue(
                    file=yaml_path,
                    message=f"Searchable field '{name}' is not a string field",
                    path=f"fields[{i}]/searchable",
                    severity="warning",
                )
            )
    return issues


def validate_yaml_file(yaml_path: Path, schema_name: str = TABLE_SCHEMA) -> list[ValidationIssue]:
    """
    Validate a single YAML file against the named schema.

    Returns:
        A list of :class:`ValidationIssue` objects (empty on success).
    """
    try:
        with yaml_path.open() as fh:
            raw = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        return [ValidationIssue(file=yaml_path, message=f"YAML parse error: {exc}")]

    if raw is None:
        return [
            ValidationIssue(file=yaml_path, message="File is empty or contains only whitespace")
        ]

    validator = Draft202012Validator(_load_schema(schema_name))
    issues = [
        ValidationIssue(file=yaml_path, message=error.message, path=_json_path(error))
        for error in sorted(validator.iter_errors(raw), key=_json_path)
    ]
    if isinstance(raw, dict):
        issues.extend(_semantic_issues(yaml_path, raw))
    return issues


def validate_metadata_dir(
    metadata_dir: Path,
    *,
    strict: bool = False,
) -> list[ValidationIssue]:
    """
    Validate every ``tables/*.yaml`` file under *metadata_dir*.

    Args:
        metadata_dir: Root metadata directory (contains ``tables/``).
        strict:       If ``True``, warnings are escalated to errors.
    """
    if not metadata_dir.is_dir():
        return [
            ValidationIssue(
                file=metadata_dir,
                message=f"Metadata directory does not exist: {metadata_dir}",
            )
        ]

    all_issues: list[ValidationIssue] = []
    tables_dir = metadata_dir / "tables"
    if not tables_dir.is_dir():
        logger.warning("No tables directory under %s", metadata_dir)
        return all_issues

    for yaml_file in sorted(tables_dir.glob("*.yaml")):
        file_issues = validate_yaml_file(yaml_file)
        if strict:
            for issue in file_issues:
                if issue.severity == "warning":
                    issue.severity = "error"
        all_issues.extend(file_issues)

    return all_issues
