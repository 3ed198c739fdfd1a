"""Pytest configuration for vice_default_backend tests."""
import sys
from pathlib import Path

# Add src/ to path for src-layout imports
_PROJECT_ROOT = Path(__file__).parent.parent
_SRC = _PROJECT_ROOT / "src"
if str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

import pytest

from vice_default_backend.settings import BackendSettings

NOT_FOUND_HTML = "<html><body>no such app</body></html>"


@pytest.fixture
def static_dir(tmp_path):
    """Create a temporary static directory holding a 404 page."""
    static = tmp_path / "static"
    static.mkdir()
    (static / "404.html").write_text(NOT_FOUND_HTML)
    (static / "style.css").write_text("body { color: black; }")
    return static


@pytest.fixture
def settings(static_dir):
    """Settings for the cyverse.run deployment with an in-memory lookup."""
    return BackendSettings(
        base_url="https://cyverse.run",
        vice_domain="cyverse.run",
        landing_page_url="https://cyverse.run",
        loading_page_url="https://loading.cyverse.run",
        lookup_backend="memory",
        static_file_path=str(static_dir),
    )
