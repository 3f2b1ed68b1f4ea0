"""Engine configuration management helpers."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

ENV_PREFIX = "CALLCOST_"


def _str_to_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"Invalid integer value: {value}") from exc


def _str_to_optional_int(value: str | None, default: Optional[int]) -> Optional[int]:
    if value is None:
        return default
    if not value.strip():
        return None
    return _str_to_int(value, 0)


@dataclass(frozen=True)
class EngineConfig:
    """Immutable configuration object loaded from env or files.

    Rounding precision and the default call type are engine constants and
    deliberately not part of this object.
    """

    top_n_limit: int = 10
    top_destination_limit: int = 10
    template_destination_limit: int = 10
    default_carrier_id: Optional[int] = None
    database_path: str = "call_costs.db"

    def __post_init__(self) -> None:
        self.validate()

    @classmethod
    def from_env(cls) -> "EngineConfig":
        defaults = cls()
        return cls(
            top_n_limit=_str_to_int(
                os.getenv(f"{ENV_PREFIX}TOP_N_LIMIT"), defaults.top_n_limit
            ),
            top_destination_limit=_str_to_int(
                os.getenv(f"{ENV_PREFIX}TOP_DESTINATION_LIMIT"),
                defaults.top_destination_limit,
            ),
            template_destination_limit=_str_to_int(
                os.getenv(f"{ENV_PREFIX}TEMPLATE_DESTINATION_LIMIT"),
                defaults.template_destination_limit,
            ),
            default_carrier_id=_str_to_optional_int(
                os.getenv(f"{ENV_PREFIX}DEFAULT_CARRIER_ID"),
                defaults.default_carrier_id,
            ),
            database_path=os.getenv(
                f"{ENV_PREFIX}DATABASE_PATH", defaults.database_path
            ),
        )

    @classmethod
    def from_file(cls, path: str) -> "EngineConfig":
        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        raw = file_path.read_text()
        data: Dict[str, Any]
        suffix = file_path.suffix.lower()
        if suffix == ".json":
            data = json.loads(raw)
        elif suffix in {".yaml", ".yml"}:
            data = cls._load_yaml(raw)
        else:
            raise ValueError("Unsupported config format. Use JSON or YAML.")
        return cls(**cls._settings_from(data))

    def validate(self) -> None:
        for name in ("top_n_limit", "top_destination_limit", "template_destination_limit"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1")
        if self.default_carrier_id is not None and self.default_carrier_id < 0:
            raise ValueError("default_carrier_id must be non-negative")
        if not self.database_path:
            raise ValueError("database_path must be provided")

    @classmethod
    def _settings_from(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate file keys against the dataclass fields; nulls fall back to defaults."""

        known = {item.name for item in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(unknown)}")
        return {name: value for name, value in data.items() if value is not None}

    @staticmethod
    def _load_yaml(raw: str) -> Dict[str, Any]:
        try:
            import yaml  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("PyYAML is required to parse YAML config files") from exc
        return yaml.safe_load(raw) or {}
