"""Checkout shim: lets ``import ueot`` resolve to ``src/ueot`` without an install."""

from __future__ import annotations

from pathlib import Path
from pkgutil import extend_path

__path__ = extend_path(__path__, __name__)

_SRC_PACKAGE = str(Path(__file__).resolve().parent.parent / "src" / "ueot")
if Path(_SRC_PACKAGE).is_dir() and _SRC_PACKAGE not in __path__:
    __path__.append(_SRC_PACKAGE)
