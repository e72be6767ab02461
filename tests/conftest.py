from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.unit_builder import UnitTreeBuilder


@pytest.fixture
def unit_builder(tmp_path: Path) -> UnitTreeBuilder:
    """Provide a unit project builder rooted at the pytest tmp_path."""
    return UnitTreeBuilder(tmp_path)
