"""Base repository implementation for JSON definition data."""
from __future__ import annotations

from pathlib import Path
from typing import Generic, TypeVar

from ringboard.data.errors import DataValidationError
from ringboard.data.json_loader import load_definition_object
from ringboard.data import paths

T = TypeVar("T")


class RepositoryBase(Generic[T]):
    """Loads one definition file once and caches what _build makes of it."""

    def __init__(self, filename: str, base_path: Path | str | None = None) -> None:
        self._filename = filename
        self._base_path = Path(base_path) if base_path is not None else None
        self._loaded: T | None = None

    def _get_file_path(self) -> Path:
        definitions_dir = paths.get_definitions_path(self._base_path)
        return definitions_dir / self._filename

    def _load_raw(self) -> dict[str, object]:
        return load_definition_object(self._get_file_path())

    def _build(self, raw: dict[str, object]) -> T:
        """Convert the raw file contents into typed definitions."""
        raise NotImplementedError

    def load(self) -> T:
        if self._loaded is None:
            self._loaded = self._build(self._load_raw())
        return self._loaded

    @staticmethod
    def _require_mapping(value: object, context: str) -> dict[str, object]:
        if not isinstance(value, dict):
            raise DataValidationError(f"{context} must be an object/dict.")
        return value

    @staticmethod
    def _require_list(value: object, context: str) -> list[object]:
        if not isinstance(value, list):
            raise DataValidationError(f"{context} must be a list.")
        return value

    @staticmethod
    def _require_str(value: object, context: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise DataValidationError(f"{context} must be a non-empty string.")
        return value

    @staticmethod
    def _require_int(value: object, context: str) -> int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise DataValidationError(f"{context} must be an integer.")
        return value

    @staticmethod
    def _require_number(value: object, context: str) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise DataValidationError(f"{context} must be a number.")
        return float(value)
