"""
Root conftest: puts src/ on sys.path so tests can `import krs_planner`
without an editable install, and exposes the bundled sample data.
"""
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).parent
sys.path.insert(0, str(ROOT / "src"))


@pytest.fixture
def sample_catalog_path() -> Path:
    return ROOT / "data" / "sample_catalog.json"


@pytest.fixture
def sample_plan_path() -> Path:
    return ROOT / "data" / "sample_plan.json"
