import os
from pathlib import Path

import pytest

from fakes import FakeEngine
from fixture_data import FixtureStore
from runner import SuiteContext
from suite_config import PathSettings, Settings, TimeoutSettings

REPO_ROOT = Path(__file__).resolve().parent.parent
TESTDATA_DIR = REPO_ROOT / "data" / "testdata"
CONFIG_DIR = REPO_ROOT / "data" / "config"


def pytest_collection_modifyitems(config, items):
    if os.environ.get("RUN_BROWSER_TESTS") == "1":
        return
    skip = pytest.mark.skip(reason="needs Playwright browsers; set RUN_BROWSER_TESTS=1")
    for item in items:
        if "browser" in item.keywords:
            item.add_marker(skip)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        timeouts=TimeoutSettings(short_wait=50, medium_wait=50, long_wait=200, element_wait=100),
        paths=PathSettings(
            screenshots=str(tmp_path / "screenshots"),
            test_data=str(TESTDATA_DIR),
            reports=str(tmp_path / "reports"),
        ),
    )


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def fixtures():
    return FixtureStore(TESTDATA_DIR)


@pytest.fixture
def suite(settings, engine, fixtures, tmp_path):
    return SuiteContext.create(settings, run_dir=tmp_path / "run", launcher=engine.launch, fixtures=fixtures)
