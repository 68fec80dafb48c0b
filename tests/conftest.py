"""Global pytest configuration and fixtures."""

# Standard library imports
from pathlib import Path

# Load test environment variables
from dotenv import load_dotenv

test_env_path = Path(__file__).parent.parent / ".env.test"
if test_env_path.exists():
    load_dotenv(test_env_path, override=True)

# Third-party imports
import pytest

# Local imports
from sqlchain.application.config import ApplicationConfig, BuilderConfig, reset_config, set_config
from sqlchain.infrastructure.database.drivers import RecordingDriver
from sqlchain.infrastructure.database.query_builder import QueryBuilder
from sqlchain.infrastructure.hooks import HookRegistry


@pytest.fixture(autouse=True)
def default_config():
    """Pin the application configuration to its defaults for every test."""
    set_config(ApplicationConfig())
    yield
    reset_config()


@pytest.fixture
def driver() -> RecordingDriver:
    """Provides an in-memory driver without a table prefix."""
    return RecordingDriver()


@pytest.fixture
def prefixed_driver() -> RecordingDriver:
    """Provides an in-memory driver with the ``wp_`` table prefix."""
    return RecordingDriver(table_prefix="wp_")


@pytest.fixture
def hooks() -> HookRegistry:
    return HookRegistry()


@pytest.fixture
def make_builder(driver, hooks):
    """Factory for builders sharing the test driver and hook registry."""

    def factory(id: str = "test", target=None, config: BuilderConfig | None = None) -> QueryBuilder:
        return QueryBuilder(target or driver, id, hooks, config or BuilderConfig())

    return factory
