"""Basic smoke tests for repository health."""

from pathlib import Path

import performative
from performative.web.app import create_app

ROOT = Path(__file__).resolve().parents[1]


def test_repo_layout_exists() -> None:
    """Ensure fundamental project files are present."""
    assert (ROOT / "README.md").is_file()
    assert (ROOT / "pyproject.toml").is_file()
    assert performative.__version__


def test_app_routes_registered(settings_manager) -> None:
    paths = {route.path for route in create_app(settings_manager=settings_manager).routes}
    assert "/api/v1/settings/detection" in paths
    assert "/api/v1/state" in paths
    assert "/health/ready" in paths
