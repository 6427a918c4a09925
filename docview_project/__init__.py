"""docview_project package

Embedded remote-document viewer core. The code lives under
:pymod:`docview_project.src` (``core``, ``models``, ``services``,
``controllers``, ``ui`` and ``utils`` sub-packages).
"""
