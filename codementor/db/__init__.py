"""Profile persistence."""

from .profiles import (
    PersistenceError,
    ProfileRepository,
    load_store,
    save_store,
    attach_autosave,
)

__all__ = [
    "PersistenceError",
    "ProfileRepository",
    "load_store",
    "save_store",
    "attach_autosave",
]
