from __future__ import annotations

import importlib
from typing import Any, Dict

_PXR_CACHE: Dict[str, Any] = {}


def get_pxr_module(name: str) -> Any:
    if name not in _PXR_CACHE:
        _PXR_CACHE[name] = importlib.import_module(f"pxr.{name}")
    return _PXR_CACHE[name]


class _ModuleProxy:
    """Import the pxr submodule on first attribute access."""

    def __init__(self, module_name: str):
        self._module_name = module_name

    def _module(self):
        return get_pxr_module(self._module_name)

    def __getattr__(self, item: str) -> Any:
        return getattr(self._module(), item)

    def __dir__(self):
        return dir(self._module())


Usd = _ModuleProxy("Usd")
UsdGeom = _ModuleProxy("UsdGeom")

__all__ = ["Usd", "UsdGeom", "get_pxr_module"]
