import sys
import pytest
from pathlib import Path

# Add project root (1 level up from tests/) to sys.path so tests can import 'popup_translator'
root = Path(__file__).resolve().parents[1]
if str(root) not in sys.path:
    sys.path.insert(0, str(root))

tests_dir = Path(__file__).resolve().parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

from popup_translator.config.settings import Settings
from popup_translator.services.cache.translation_cache import TranslationCache
from popup_translator.services.errors.history import ErrorHistory
from popup_translator.services.session.coordinator import SessionCoordinator
from helpers import FakeClock


@pytest.fixture
def test_settings(tmp_path):
    """Settings isolated from the developer's environment and .env file."""
    return Settings(
        _env_file=None,
        ANTHROPIC_API_KEY="test-key",
        TRANSLATION_MODEL="m1",
        DATA_DIR=tmp_path,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TranslationCache(max_entries=3, ttl_seconds=3600, clock=clock)


@pytest.fixture
def sessions():
    return SessionCoordinator()


@pytest.fixture
def error_history(tmp_path, clock):
    return ErrorHistory(path=tmp_path / "error_history.json", clock=clock)
