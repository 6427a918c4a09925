"""Global test fixtures: offscreen Qt, fake engine/surface, isolated settings."""
import os
import sys
from pathlib import Path
from typing import Any, List

import pytest

# Headless CI has no display; must be set before the QApplication exists.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

# ---------------------------------------------------------------------------
# Ensure the repository root is on sys.path so that `import docview_project` is
# always resolvable when tests are run from any working directory (e.g., CI).
# ---------------------------------------------------------------------------
_repo_root = Path(__file__).resolve().parent.parent
if str(_repo_root) not in sys.path:
    sys.path.insert(0, str(_repo_root))

from docview_project.src.core.errors import LoadError  # noqa: E402
from docview_project.src.models.document_state import PageContainer  # noqa: E402
from docview_project.src.services.engine import (  # noqa: E402
    PAGE_CHANGING,
    PAGES_INIT,
    SCALE_CHANGING,
    EngineEvent,
)
from docview_project.src.services.settings_service import SettingsService  # noqa: E402
from docview_project.src.ui.viewport import FixedViewportInspector  # noqa: E402


# ---------------------------------------------------------------------------
# Fake rendering engine
# ---------------------------------------------------------------------------
class FakeDocument:
    def __init__(self, uri, page_count=10, filename=None):
        self.uri = uri
        self.page_count = page_count
        self.transport_filename = filename
        self.closed = False


class FakePage:
    def __init__(self, number, width=100.0, height=200.0):
        self.number = number
        self.width = width
        self.height = height


class FakeViewer:
    """Mimics a browser PDF viewer: fit modes resolve to *fit_scale*."""

    def __init__(self, surface, event_bus, fit_scale=1.0):
        self.container = surface
        self.event_bus = event_bus
        self.fit_scale = fit_scale
        self.pdf_document = None
        self._scale = 1.0
        self.current_scale_value = None
        self.current_page_number = 1
        self.closed = False

    @property
    def pages_count(self):
        return self.pdf_document.page_count if self.pdf_document else 0

    @property
    def current_scale(self):
        return self._scale

    @current_scale.setter
    def current_scale(self, value):
        self._scale = value
        self.event_bus.dispatch(EngineEvent(SCALE_CHANGING, source=self, scale=value))

    def set_document(self, document):
        self.pdf_document = document
        self.event_bus.dispatch(EngineEvent(PAGES_INIT, source=self))

    def scroll_to(self, page_number):
        """Simulate the user scrolling to *page_number*."""
        self.current_page_number = page_number
        self.event_bus.dispatch(EngineEvent(PAGE_CHANGING, source=self, page_number=page_number))

    def close(self):
        self.closed = True


class FakeEngine:
    def __init__(self, page_count=10, filename=None, fail_with=None):
        self.page_count = page_count
        self.filename = filename
        self.fail_with = fail_with
        self.opened: List[Any] = []
        self.closed: List[Any] = []
        self.viewers: List[FakeViewer] = []
        self.rendered: List[tuple] = []
        self.gate = None  # asyncio.Event; when set, open() waits for it

    async def open(self, uri, headers):
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        doc = FakeDocument(uri, self.page_count, self.filename)
        doc.headers = dict(headers)
        self.opened.append(doc)
        return doc

    def get_page_count(self, document):
        return document.page_count

    async def get_pages(self, document):
        return [FakePage(i) for i in range(document.page_count)]

    def get_page_container(self, page, scale):
        return PageContainer(width=page.width * scale, height=page.height * scale)

    def create_viewer(self, surface, event_bus):
        viewer = FakeViewer(surface, event_bus)
        self.viewers.append(viewer)
        return viewer

    async def render_page(self, page, scale, surface):
        self.rendered.append((page.number + 1, scale, surface))

    def close_document(self, document):
        document.closed = True
        self.closed.append(document)


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def failing_engine():
    return FakeEngine(fail_with=LoadError("404"))


@pytest.fixture
def small_screen():
    return FixedViewportInspector(True)


@pytest.fixture
def large_screen():
    return FixedViewportInspector(False)


@pytest.fixture
def surface():
    return object()


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point the settings singleton at a throw-away file for every test."""
    monkeypatch.setattr(SettingsService, "_path", tmp_path / "settings.json")
    SettingsService.reset_instance()
    yield SettingsService()
    SettingsService.reset_instance()
