"""Shared fixtures. Kivy's environment must be set before anything imports it."""

import logging
import os
import tempfile

os.environ.setdefault("KIVY_NO_ARGS", "1")
os.environ.setdefault("KIVY_NO_CONSOLELOG", "1")
os.environ.setdefault("KIVY_NO_FILELOG", "1")
os.environ.setdefault("KIVY_LOG_MODE", "PYTHON")
os.environ.setdefault("KIVY_HOME", tempfile.mkdtemp(prefix="kivy_home_"))

import pytest
from PIL import Image

from vision_loop.core.content_store import ContentStore
from vision_loop.core.models import MediaItem, MediaType


class FakeEvent:
    def __init__(self, callback, timeout):
        self.callback = callback
        self.timeout = timeout
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeClock:
    """Stands in for kivy.clock.Clock; events fire only when the test says so."""

    def __init__(self):
        self.events = []

    def schedule_once(self, callback, timeout=0):
        event = FakeEvent(callback, timeout)
        self.events.append(event)
        return event

    @property
    def pending(self):
        return [e for e in self.events if not e.cancelled]

    def fire(self, event):
        assert not event.cancelled
        event.cancelled = True
        event.callback(event.timeout)


@pytest.fixture(autouse=True)
def reset_app_logger():
    yield
    app_logger = logging.getLogger("vision_loop")
    for handler in list(app_logger.handlers):
        app_logger.removeHandler(handler)
        handler.close()
    app_logger.setLevel(logging.NOTSET)
    app_logger.propagate = True


@pytest.fixture
def data_dir(tmp_path):
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def store(data_dir):
    content_store = ContentStore(user_data_dir=data_dir)
    content_store.initialize(sweep=False)
    return content_store


@pytest.fixture
def make_file(tmp_path):
    """Writes a source file outside managed storage."""
    source_dir = tmp_path / "picked"
    source_dir.mkdir(exist_ok=True)

    def _make(name, content=b"some media bytes"):
        path = source_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path

    return _make


@pytest.fixture
def make_image(tmp_path):
    source_dir = tmp_path / "picked"
    source_dir.mkdir(exist_ok=True)

    def _make(name, color=(255, 0, 0), size=(8, 6), fmt="PNG"):
        path = source_dir / name
        Image.new("RGB", size, color).save(path, format=fmt)
        return path

    return _make


@pytest.fixture
def fake_clock():
    return FakeClock()


def media_items(types):
    """Builds MediaItems from a string such as 'iivi' (image/video)."""
    kinds = {"i": MediaType.IMAGE, "v": MediaType.VIDEO}
    return [
        MediaItem(id=f"mi_{n}", type=kinds[t], uri=f"/nonexistent/{n}", order_index=n)
        for n, t in enumerate(types)
    ]
