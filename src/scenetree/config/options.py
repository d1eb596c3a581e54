from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

try:
    import yaml  # type: ignore
except Exception:  # pragma: no cover - optional dependency
    yaml = None

log = logging.getLogger(__name__)

_TRUE_TOKENS = {"1", "true", "yes", "on"}
_FALSE_TOKENS = {"0", "false", "no", "off", ""}


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    token = raw.strip().lower()
    if token in _TRUE_TOKENS:
        return True
    if token in _FALSE_TOKENS:
        return False
    log.warning("Ignoring unrecognised %s=%r; using %s", name, raw, default)
    return default


def _env_int(name: str) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw.strip())
    except ValueError:
        log.warning("Ignoring non-integer %s=%r", name, raw)
        return None


def _coerce_flag(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        token = value.strip().lower()
        if token in _TRUE_TOKENS:
            return True
        if token in _FALSE_TOKENS:
            return False
    raise ValueError(f"Option '{key}' must be a boolean, got {value!r}")


@dataclass(frozen=True)
class BuildOptions:
    """Knobs for tree construction and scene loading.

    Defaults are read from ``SCENETREE_STRICT_FIELDS`` and ``SCENETREE_MAX_DEPTH``
    when the instance is created.
    """

    strict_fields: bool = field(default_factory=lambda: _env_flag("SCENETREE_STRICT_FIELDS"))
    max_depth: Optional[int] = field(default_factory=lambda: _env_int("SCENETREE_MAX_DEPTH"))
    post_process: Tuple[str, ...] = tuple()

    def __post_init__(self) -> None:
        if self.max_depth is not None and self.max_depth < 1:
            raise ValueError(f"max_depth must be >= 1, got {self.max_depth}")

    @classmethod
    def from_mapping(cls, data: Optional[Dict[str, Any]]) -> "BuildOptions":
        if not data:
            return cls()
        unknown = set(data) - {"strict_fields", "max_depth", "post_process"}
        if unknown:
            log.warning("Ignoring unknown build option(s): %s", ", ".join(sorted(unknown)))
        kwargs: Dict[str, Any] = {}
        if "strict_fields" in data:
            kwargs["strict_fields"] = _coerce_flag(data["strict_fields"], "strict_fields")
        if "max_depth" in data:
            raw = data["max_depth"]
            try:
                kwargs["max_depth"] = None if raw is None else int(raw)
            except (TypeError, ValueError) as exc:
                raise ValueError(f"Option 'max_depth' must be an integer, got {raw!r}") from exc
        if "post_process" in data:
            steps = data["post_process"] or []
            if isinstance(steps, str):
                steps = [steps]
            kwargs["post_process"] = tuple(str(step) for step in steps)
        return cls(**kwargs)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "BuildOptions":
        path = Path(path)
        text = path.read_text(encoding="utf-8")
        return cls.from_text(text, suffix=path.suffix)

    @classmethod
    def from_text(cls, text: str, *, suffix: str) -> "BuildOptions":
        return cls.from_mapping(_load_data_from_text(text, suffix=suffix))


def _load_data_from_text(text: str, *, suffix: str) -> Dict[str, Any]:
    ext = (suffix or "").lower()
    if ext in {".yaml", ".yml"}:
        if yaml is None:
            raise RuntimeError("PyYAML is required to load YAML option files")
        loaded = yaml.safe_load(text)
        if loaded is None:
            return {}
        if not isinstance(loaded, dict):
            raise ValueError("YAML options must define a mapping at the top level")
        return loaded
    if ext == ".json":
        loaded = json.loads(text)
        if not isinstance(loaded, dict):
            raise ValueError("JSON options must define a mapping at the top level")
        return loaded
    raise ValueError(f"Unsupported options file type: {suffix}")


def load_options(path: Union[str, Path]) -> BuildOptions:
    options = BuildOptions.from_file(path)
    log.info("Loaded build options from %s", path)
    return options


__all__ = ["BuildOptions", "load_options"]
