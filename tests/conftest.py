import json
import logging
import sys
from pathlib import Path

import pytest

from qmodpack.app.settings import SETTINGS_ENV_VAR, loadSettings



def pytest_configure(config: pytest.Config) -> None:
    if sys.flags.optimize:
        raise RuntimeError("Assertions are disabled (optimize > 0)")



@pytest.fixture(autouse=True)
def isolatedSettings(monkeypatch, tmp_path):
    """Point settings at an empty per-test file so ~/.qmodpack never leaks into tests."""
    settingsPath = tmp_path / "settings.json5"
    monkeypatch.setenv(SETTINGS_ENV_VAR, str(settingsPath))
    loadSettings.cache_clear()
    yield settingsPath
    loadSettings.cache_clear()



@pytest.fixture()
def writeSettings(isolatedSettings):
    def _write(payload: dict) -> Path:
        isolatedSettings.write_text(json.dumps(payload), encoding="utf-8")
        loadSettings.cache_clear()
        return isolatedSettings
    return _write



@pytest.fixture()
def restoreRootLogger():
    """configureLogging() replaces root handlers; put pytest's back afterwards."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
