"""Shared test configuration and fixtures."""
import pytest

from fleet_verify import config as config_module
from fleet_verify.events import clear_events
from fleet_verify.verification.tracker import _reset_tracker
from fleet_verify.verification.types import VerificationStatus

# =============================================================================
# Environment Reset
# =============================================================================


@pytest.fixture(autouse=True)
def reset_env(monkeypatch, tmp_path):
    """Isolate each test from the user's environment and config files."""
    for var in (
        "FLEET_VERIFY_CONFIG",
        "FLEET_VERIFY_STORE",
        "FLEET_VERIFY_RETRY",
        "FLEET_VERIFY_INSTANCE_TYPES",
        "FLEET_VERIFY_MAX_CONCURRENCY",
        "FLEET_VERIFY_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)

    # Keep config discovery away from the real cwd and home directory
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)

    monkeypatch.setattr(config_module, "_global_config", None)
    _reset_tracker()
    clear_events()
    yield
    _reset_tracker()
    clear_events()


# =============================================================================
# Shared Status Fixtures
# =============================================================================


@pytest.fixture
def existing_store():
    """Store with one confirmed, one inconclusive and one never-attempted type."""
    return {
        "a": VerificationStatus(attempted=True, confirmed=True, metric=10),
        "b": VerificationStatus(attempted=True, confirmed=False, metric=70),
        "c": VerificationStatus(attempted=False, confirmed=False, metric=-1),
    }


@pytest.fixture
def store_path(tmp_path):
    """Path to a JSONL status store inside the test's temp directory."""
    return str(tmp_path / "store" / "status.jsonl")


# =============================================================================
# Custom Pytest Markers
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
