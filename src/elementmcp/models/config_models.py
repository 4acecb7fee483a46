"""Configuration data models."""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from elementmcp.domains.element_registry.value_objects import FingerprintTieBreak
from elementmcp.domains.picker.value_objects import PickerOptions

# storage_dir value that keeps the registry in process memory only
MEMORY_STORAGE = ":memory:"

_ENV_PREFIX = "ELEMENTMCP_"
_ENV_LOADED = False
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}
_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass(frozen=True)
class ElementMcpConfig:
    """Centralized configuration for the element server."""

    # Persistence
    storage_key: str = "web_llm_elements"
    storage_dir: Optional[str] = None  # None = ~/.element-mcp/storage

    # Registry
    track_changes_default: bool = False
    max_pending_mutations: int = 50
    fingerprint_tie_break: str = FingerprintTieBreak.STRICT.value
    auto_register: bool = True  # register picks automatically

    # Picker defaults
    show_info_box: bool = True
    enable_right_click: bool = True
    enable_keyboard_nav: bool = True

    # Static page layout
    viewport_width: int = 1280
    viewport_height: int = 720

    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "ElementMcpConfig":
        """Create configuration from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in config.items() if key in known})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def with_overrides(self, **overrides: Any) -> "ElementMcpConfig":
        """Return a copy with the non-None overrides applied."""
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"Unknown configuration key(s): {sorted(unknown)}")
        applied = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **applied) if applied else self

    def validate(self) -> List[str]:
        """Validate configuration values and return any errors."""
        errors = []

        if not self.storage_key:
            errors.append("storage_key must not be empty")

        if self.max_pending_mutations < 1:
            errors.append("max_pending_mutations must be at least 1")

        if self.fingerprint_tie_break not in [m.value for m in FingerprintTieBreak]:
            errors.append("fingerprint_tie_break must be 'strict' or 'first'")

        if self.log_level.upper() not in _LOG_LEVELS:
            errors.append(f"log_level must be one of {_LOG_LEVELS}")

        if self.viewport_width <= 0 or self.viewport_height <= 0:
            errors.append("viewport dimensions must be positive")

        return errors

    @property
    def in_memory(self) -> bool:
        return self.storage_dir == MEMORY_STORAGE

    @property
    def tie_break(self) -> FingerprintTieBreak:
        return FingerprintTieBreak.from_string(self.fingerprint_tie_break)

    def picker_options(self) -> PickerOptions:
        return PickerOptions(
            show_info_box=self.show_info_box,
            enable_right_click=self.enable_right_click,
            enable_keyboard_nav=self.enable_keyboard_nav,
        )


def load_config(**overrides: Any) -> ElementMcpConfig:
    """Load configuration from ELEMENTMCP_* environment variables and overrides.

    Environment variables use the upper-cased field name, e.g.
    ELEMENTMCP_STORAGE_DIR or ELEMENTMCP_TRACK_CHANGES_DEFAULT.

    Raises:
        ValueError: If a value cannot be converted or the result is invalid
    """
    _ensure_env_loaded()
    values: Dict[str, Any] = {}
    for f in fields(ElementMcpConfig):
        raw = os.getenv(f"{_ENV_PREFIX}{f.name.upper()}")
        if raw is None or not raw.strip():
            continue
        values[f.name] = _convert(f.name, raw.strip(), f.default)

    config = ElementMcpConfig.from_dict(values).with_overrides(**overrides)
    errors = config.validate()
    if errors:
        raise ValueError(f"Invalid configuration: {'; '.join(errors)}")
    return config


def _convert(name: str, raw: str, default: Any) -> Any:
    if isinstance(default, bool):
        lowered = raw.lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ValueError(f"{_ENV_PREFIX}{name.upper()} must be a boolean, got '{raw}'")
    if isinstance(default, int):
        try:
            return int(raw)
        except ValueError:
            raise ValueError(f"{_ENV_PREFIX}{name.upper()} must be an integer, got '{raw}'") from None
    return raw


def _ensure_env_loaded() -> None:
    global _ENV_LOADED
    if _ENV_LOADED:
        return
    _ENV_LOADED = True
    dotenv_path = Path.cwd() / ".env"
    if dotenv_path.exists():
        load_dotenv(dotenv_path=dotenv_path)
    else:
        load_dotenv()
