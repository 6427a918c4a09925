import pytest

from docview_project.src.core.errors import LoadError, NotReadyError, RangeError
from docview_project.src.models.document_state import PageContainer
from docview_project.src.services.document_store import DocumentStore
from docview_project.src.services.engine import PAGE_CHANGING, EngineEvent
from docview_project.src.services.pagination_tracker import PaginationTracker
from docview_project.src.services.rendering_bridge import RenderingBridge


def _bridge(engine, viewport, surface):
    store = DocumentStore(engine)
    tracker = PaginationTracker(store)
    return RenderingBridge(engine, store, tracker, viewport, surface), store


@pytest.mark.asyncio
@pytest.mark.parametrize("screen, mode", [("small_screen", "page-width"), ("large_screen", "page-fit")])
async def test_pages_init_applies_fit_mode(qtbot, request, fake_engine, surface, screen, mode):
    bridge, store = _bridge(fake_engine, request.getfixturevalue(screen), surface)
    document = await store.fetch_document("document/url", {"token": "123abcd456"})

    with qtbot.waitSignal(bridge.pagesInitialized) as blocker:
        bridge.attach(document, 1)

    assert blocker.args == [10, 1]
    assert bridge.is_ready
    assert bridge.viewer.current_scale_value == mode
    assert store.state.pagination() == {"current": 1, "total": 10}
    assert (store.state.scale.current, store.state.scale.default) == (1.0, 1.0)
    assert store.state.page_container == PageContainer(100.0, 200.0)


@pytest.mark.asyncio
async def test_scale_and_page_events_reach_store(fake_engine, small_screen, surface):
    bridge, store = _bridge(fake_engine, small_screen, surface)
    bridge.attach(await store.fetch_document("document/url"), 1)

    bridge.set_scale(1.5)
    assert store.state.scale.current == 1.5
    assert store.state.scale.default == 1.0

    bridge.viewer.scroll_to(7)
    assert store.state.current_page_num == 7


@pytest.mark.asyncio
async def test_detach_unregisters_listeners_and_is_idempotent(fake_engine, small_screen, surface):
    bridge, store = _bridge(fake_engine, small_screen, surface)
    handle = bridge.attach(await store.fetch_document("document/url"), 1)
    old_viewer = handle.viewer

    bridge.detach()
    bridge.detach()

    assert old_viewer.closed
    assert not bridge.is_attached
    assert handle.event_bus.listener_count(PAGE_CHANGING) == 0
    old_viewer.scroll_to(9)
    assert store.state.current_page_num == 1


@pytest.mark.asyncio
async def test_stale_listener_is_dropped(fake_engine, small_screen, surface):
    bridge, store = _bridge(fake_engine, small_screen, surface)
    document = await store.fetch_document("document/url")
    old_listener = bridge.attach(document, 1).listeners[PAGE_CHANGING]

    bridge.attach(document, 2)
    old_listener(EngineEvent(PAGE_CHANGING, page_number=6))

    assert store.state.current_page_num == 1
    assert len(fake_engine.viewers) == 2
    assert fake_engine.viewers[0].closed


@pytest.mark.asyncio
async def test_commands_require_pages_init(fake_engine, small_screen, surface):
    bridge, _ = _bridge(fake_engine, small_screen, surface)
    with pytest.raises(NotReadyError):
        bridge.set_scale(2.0)
    with pytest.raises(NotReadyError):
        bridge.set_page(2)
    with pytest.raises(NotReadyError):
        await bridge.render_page(1)


@pytest.mark.asyncio
async def test_render_page_validates_range(fake_engine, small_screen, surface):
    bridge, store = _bridge(fake_engine, small_screen, surface)
    bridge.attach(await store.fetch_document("document/url"), 1)

    await bridge.render_page(2)
    assert fake_engine.rendered == [(2, 1.0, surface)]

    with pytest.raises(RangeError):
        await bridge.render_page(11)


@pytest.mark.asyncio
async def test_rejected_pages_init_raises_from_attach(fake_engine, small_screen, surface):
    bridge, store = _bridge(fake_engine, small_screen, surface)
    document = await store.fetch_document("document/url")
    create_viewer = fake_engine.create_viewer

    def viewer_starting_at_page_zero(target, event_bus):
        viewer = create_viewer(target, event_bus)
        viewer.current_page_number = 0
        return viewer

    fake_engine.create_viewer = viewer_starting_at_page_zero

    with pytest.raises(LoadError) as excinfo:
        bridge.attach(document, 1)

    assert isinstance(excinfo.value.__cause__, RangeError)
    assert not bridge.is_ready
    assert not bridge.is_attached
    assert fake_engine.viewers[-1].closed
    with pytest.raises(NotReadyError):
        await bridge.render_page(1)
