from __future__ import annotations

"""singleton.py
Minimal *Singleton* base-class for services that need exactly one
process-wide instance (currently only :class:`SettingsService`).

Subclasses **must** guard their own ``__init__`` against re-initialisation,
because ``__init__`` runs on every ``Cls()`` call even though ``__new__``
hands back the cached instance.  Tests reset the cache through
:meth:`Singleton.reset_instance`.
"""

from typing import Any


class Singleton:  # noqa: D101 – trivial helper
    _instance: Singleton | None = None

    def __new__(cls, *args: Any, **kwargs: Any):
        # Look up on *cls* itself so every subclass gets its own slot.
        if cls.__dict__.get("_instance") is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Forget the cached instance; the next call builds a fresh one."""
        cls._instance = None
