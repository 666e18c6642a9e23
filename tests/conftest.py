"""Pytest configuration.

The project does not require installation as an editable package for
development. When `pytest` runs without the repository root on `sys.path`,
imports like `import qk_core...` or `import quote_keeper` break.

This file ensures the repository root is importable.
"""

from __future__ import annotations

import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
