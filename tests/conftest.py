"""
pytest configuration and fixtures.
"""

import sys
from pathlib import Path

import pytest

# Repository root holds the top-level modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from web_app import app as flask_app


@pytest.fixture
def app():
    """Flask app configured for tests."""
    flask_app.config.update(TESTING=True, REQUEST_TIMEOUT=5.0)
    yield flask_app


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def json_post_command() -> str:
    """Multi-line POST command with a JSON body."""
    return (
        "curl -X POST https://api.example.com/v1/users \\\n"
        '    -H "Content-Type: application/json" \\\n'
        '    -H "Authorization: Bearer token123" \\\n'
        "    -d '{\"name\":\"John\",\"email\":\"john@example.com\"}' \\\n"
        "    -L --compressed"
    )
