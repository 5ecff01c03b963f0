"""Reads board and tier definition files."""
from __future__ import annotations

import json
from pathlib import Path

from .errors import DataLoadError, DataValidationError


def load_definition_object(path: Path) -> dict[str, object]:
    """Parse a definitions file whose top level must be a JSON object."""
    if not path.is_file():
        raise DataLoadError(f"Definition file not found: {path}")
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise DataLoadError(f"Unable to read definition file: {path}") from exc
    except json.JSONDecodeError as exc:
        raise DataLoadError(f"{path.name} line {exc.lineno}: {exc.msg}") from exc
    if not isinstance(raw, dict):
        raise DataValidationError(f"{path.name} must hold a JSON object, got {type(raw).__name__}.")
    return raw
