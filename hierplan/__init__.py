from __future__ import annotations

import os
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
(_ROOT / ".mpl_cache").mkdir(parents=True, exist_ok=True)
os.environ.setdefault("MPLCONFIGDIR", str(_ROOT / ".mpl_cache"))
os.environ.setdefault("MPLBACKEND", "Agg")

__version__ = "0.3.0"

__all__ = ["__version__"]
