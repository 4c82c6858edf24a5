"""Pytest configuration for chatbridge tests.

Builds throwaway chat.db files with the real table and column names so the
query layer runs against SQLite exactly as it would on macOS.
"""

from pathlib import Path

import pytest

from chatbridge import config as config_module
from chatbridge.utils.latency_tracker import get_tracker
from integrations.imessage import ChatDBReader
from tests.helpers import ChatDBBuilder


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the config singleton at an empty location and reset it around each test."""
    monkeypatch.setattr(config_module, "CONFIG_PATH", tmp_path / "config" / "config.json")
    monkeypatch.delenv(config_module.DB_PATH_ENV, raising=False)
    config_module.reset_config()
    get_tracker().clear()
    yield
    config_module.reset_config()
    get_tracker().clear()


@pytest.fixture
def chat_db(tmp_path):
    """Empty chat.db with the real schema."""
    builder = ChatDBBuilder(tmp_path / "chat.db")
    yield builder
    builder.close()


@pytest.fixture
def reader(chat_db):
    """Reader over ``chat_db`` with the polling cursor at the Unix epoch."""
    chat_reader = ChatDBReader(db_path=chat_db.path, last_read_time=0)
    yield chat_reader
    chat_reader.close()


@pytest.fixture
def png_file(tmp_path):
    """Factory writing a real PNG of the given size."""
    from PIL import Image

    def _make(width: int, height: int, name: str = "image.png") -> Path:
        path = tmp_path / name
        Image.new("RGB", (width, height), color=(200, 30, 30)).save(path, format="PNG")
        return path

    return _make
