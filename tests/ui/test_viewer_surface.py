from PySide6.QtGui import QImage

from docview_project.src.ui.viewer_surface import ViewerSurface


def _image(width=50, height=80):
    image = QImage(width, height, QImage.Format.Format_RGB888)
    image.fill(0)
    return image


def test_object_names(qtbot):
    surface = ViewerSurface()
    qtbot.addWidget(surface)
    assert surface.objectName() == "Viewer"
    assert surface.page_container.objectName() == "pdfViewer"


def test_set_page_count_resets_slots(qtbot):
    surface = ViewerSurface()
    qtbot.addWidget(surface)
    surface.set_page_count(4)
    surface.paint(2, _image())
    assert surface.page_count == 4

    surface.set_page_count(2)
    assert surface.page_count == 2
    assert surface.painted_pages() == []


def test_paint_ignores_unknown_pages(qtbot):
    surface = ViewerSurface()
    qtbot.addWidget(surface)
    surface.set_page_count(2)

    surface.paint(1, _image())
    surface.paint(5, _image())

    assert surface.painted_pages() == [1]
    assert surface.page_image(1).size() == _image().size()
    assert surface.page_image(5) is None


def test_clear(qtbot):
    surface = ViewerSurface()
    qtbot.addWidget(surface)
    surface.set_page_count(3)
    surface.paint(3, _image())
    surface.clear()
    assert surface.page_count == 0
    assert surface.painted_pages() == []
