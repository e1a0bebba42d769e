"""
Pytest configuration for karmic seed store tests.
"""

import sys
from pathlib import Path

import pytest

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

DEFAULT_CONFIG_PATH = project_root / "config" / "karma_defaults.yaml"


# =============================================================================
# VALIDATION ON TEST RUN
# =============================================================================

def pytest_configure(config):
    """
    Validate the shipped store config before running tests.

    This ensures a bad YAML file can't ship - load errors surface as
    test collection failures.
    """
    from dharma.karma.config import load_config_from_yaml

    try:
        load_config_from_yaml(DEFAULT_CONFIG_PATH)
    except (FileNotFoundError, ValueError) as e:
        pytest.fail(f"Store config validation failed:\n{e}", pytrace=False)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture(autouse=True)
def default_config():
    """
    Restore the default active config around every test.

    Tests that call set_config() must not leak into later tests.
    """
    from dharma.karma.config import reset_config
    reset_config()
    yield
    reset_config()
