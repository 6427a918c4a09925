import asyncio
from unittest.mock import MagicMock

import pytest
import pytest_asyncio

from docview_project.src.controllers.viewer_controller import ViewerCommand, ViewerController
from docview_project.src.core.errors import NotReadyError, RangeError
from docview_project.src.models.document_source import DocumentSource

SRC = "document/url"
HEADER = {"token": "123abcd456"}


@pytest.fixture
def make_controller(qtbot, fake_engine, small_screen, surface, isolated_settings):
    def _make(**kwargs):
        return ViewerController(fake_engine, surface, small_screen,
                                settings=isolated_settings, **kwargs)
    return _make


@pytest_asyncio.fixture
async def controller(make_controller):
    ctrl = make_controller()
    await ctrl.set_source(SRC, HEADER)
    return ctrl


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_loaded_state(controller, fake_engine):
    assert controller.is_ready
    assert controller.pagination == {"current": 1, "total": 10}
    assert (controller.scale.current, controller.scale.default) == (1.0, 1.0)
    assert fake_engine.viewers[-1].current_scale_value == "page-width"
    assert fake_engine.opened[0].headers == HEADER


@pytest.mark.asyncio
async def test_large_screen_opens_in_page_fit(qtbot, fake_engine, large_screen, surface):
    ctrl = ViewerController(fake_engine, surface, large_screen)
    await ctrl.set_source(SRC, HEADER)
    assert fake_engine.viewers[-1].current_scale_value == "page-fit"


@pytest.mark.asyncio
async def test_header_only_change_reloads(qtbot, controller, fake_engine):
    with qtbot.waitSignal(controller.sourceChanged):
        await controller.set_source(DocumentSource(uri=SRC, auth_headers={"token": "rotated"}))

    assert len(fake_engine.opened) == 2
    assert fake_engine.opened[0].closed
    assert fake_engine.opened[1].headers == {"token": "rotated"}
    assert controller.pagination == {"current": 1, "total": 10}


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_go_to_page_past_end_raises(controller):
    with pytest.raises(RangeError):
        controller.go_to_page(11)
    assert controller.pagination == {"current": 1, "total": 10}


@pytest.mark.asyncio
async def test_go_to_last_page(controller, fake_engine):
    controller.dispatch(ViewerCommand.GO_TO_PAGE, 10)
    assert controller.pagination == {"current": 10, "total": 10}
    assert fake_engine.viewers[-1].current_page_number == 10


# ---------------------------------------------------------------------------
# Zoom
# ---------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_zoom_in_pushes_scale_into_viewer(controller, fake_engine):
    assert controller.dispatch(ViewerCommand.ZOOM_IN) == pytest.approx(1.1)
    assert fake_engine.viewers[-1].current_scale == pytest.approx(1.1)
    assert controller.scale.current == pytest.approx(1.1)
    assert controller.scale.default == 1.0


@pytest.mark.asyncio
async def test_zoom_out(controller, fake_engine):
    controller.zoom_out()
    assert fake_engine.viewers[-1].current_scale == 1 / 1.1


@pytest.mark.asyncio
async def test_zoom_out_stops_at_floor(controller):
    for _ in range(40):
        controller.zoom_out()
    assert controller.scale.current >= 0.2
    assert controller.scale.current / 1.1 < 0.2
    before = controller.scale.current
    controller.zoom_out()
    assert controller.scale.current == before


@pytest.mark.asyncio
async def test_reset_zoom_returns_to_default(controller, fake_engine):
    controller.zoom_in()
    controller.zoom_in()
    controller.dispatch(ViewerCommand.RESET_ZOOM)
    assert controller.scale.current == 1.0
    assert fake_engine.viewers[-1].current_scale == 1.0


@pytest.mark.asyncio
async def test_commands_before_pages_init_are_rejected(make_controller):
    ctrl = make_controller()
    for command, args in [
        (ViewerCommand.ZOOM_IN, ()),
        (ViewerCommand.ZOOM_OUT, ()),
        (ViewerCommand.RESET_ZOOM, ()),
        (ViewerCommand.GO_TO_PAGE, (1,)),
        (ViewerCommand.DOWNLOAD, ()),
    ]:
        with pytest.raises(NotReadyError):
            ctrl.dispatch(command, *args)


# ---------------------------------------------------------------------------
# Download
# ---------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_download_hands_request_to_action(make_controller):
    action = MagicMock(return_value="saved")
    ctrl = make_controller(download_action=action)
    await ctrl.set_source(SRC, HEADER)

    assert ctrl.dispatch(ViewerCommand.DOWNLOAD) == "saved"
    action.assert_called_once()
    (request,), _ = action.call_args
    assert request.to_dict() == {"src": SRC, "httpHeader": HEADER, "filename": "download.pdf"}


@pytest.mark.asyncio
async def test_download_uses_transport_filename(qtbot, make_controller, fake_engine):
    fake_engine.filename = "report.pdf"
    ctrl = make_controller()
    await ctrl.set_source(SRC, HEADER)

    with qtbot.waitSignal(ctrl.downloadRequested) as blocker:
        request = ctrl.download()

    assert request.filename == "report.pdf"
    assert blocker.args == [request]


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_render_all(controller, fake_engine, surface):
    assert await controller.render_all() == 10
    assert [r[0] for r in fake_engine.rendered] == list(range(1, 11))
    assert controller.store.state.rendered_pages == set(range(1, 11))


@pytest.mark.asyncio
async def test_stale_render_is_discarded(controller, fake_engine):
    gate = asyncio.Event()
    original = fake_engine.render_page

    async def slow_render(page, scale, surface):
        await gate.wait()
        await original(page, scale, surface)

    fake_engine.render_page = slow_render
    pending = asyncio.create_task(controller.render_page(3))
    await asyncio.sleep(0)

    fake_engine.render_page = original
    await controller.set_source("other/url", HEADER)
    gate.set()

    assert await pending is False
    assert controller.store.state.rendered_pages == set()


@pytest.mark.asyncio
async def test_clear_and_restart_render(controller, fake_engine):
    await controller.render_page(1)
    controller.clear_render_context()
    assert not controller.is_ready
    assert controller.pagination == {"current": "-", "total": "-"}

    await controller.restart_render()
    assert controller.is_ready
    assert controller.pagination == {"current": 1, "total": 10}
    assert len(fake_engine.opened) == 1


@pytest.mark.asyncio
async def test_close(controller, fake_engine):
    controller.close()
    assert fake_engine.opened[0].closed
    assert not controller.is_ready
    assert controller.source is None
