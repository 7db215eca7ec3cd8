"""Pytest configuration.

The repository uses a flat layout (`carmarket/` at the repository root). This conftest ensures
tests can import the `carmarket.*` namespace when running `pytest` without installing the package.
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure `import carmarket...` works when running pytest without installing the package.
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))
