import sys
from pathlib import Path
from typing import Iterator

import pytest

# Ensure project root is on sys.path for flexible imports
_repo_root = Path(__file__).resolve().parents[1]
_repo_root_str = str(_repo_root)
if _repo_root_str not in sys.path:
    sys.path.insert(0, _repo_root_str)

from infra_compose.core.declarations import DeclarationSink  # noqa: E402


@pytest.fixture(autouse=True)
def composition_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Pin the logging environment so JSON log lines are stable across tests."""
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    yield


@pytest.fixture
def sink() -> DeclarationSink:
    """Fresh declaration sink per test."""
    return DeclarationSink(scope="test")


def pytest_configure(config):
    """Configure pytest with essential markers."""
    config.addinivalue_line("markers", "unit: unit test")
    config.addinivalue_line("markers", "infrastructure: composition and template test")


def pytest_collection_modifyitems(config, items):
    """Add markers based on file location."""
    rootdir = Path(config.rootdir)

    for item in items:
        try:
            rel_path = Path(item.fspath).relative_to(rootdir)
        except ValueError:
            continue
        if "unit" in rel_path.parts:
            item.add_marker(pytest.mark.unit)
        if "synth" in rel_path.parts or "constructs" in rel_path.parts:
            item.add_marker(pytest.mark.infrastructure)
