"""Profile directory factory: get_directory() / set_directory() / reset_directory()."""

from checkout.profile.memory_adapter import InMemoryProfileDirectory
from checkout.profile.port import ProfileDirectory

_current_directory: ProfileDirectory | None = None


def get_directory() -> ProfileDirectory:
    global _current_directory
    if _current_directory is None:
        _current_directory = InMemoryProfileDirectory()
    return _current_directory


def set_directory(directory: ProfileDirectory) -> None:
    global _current_directory
    _current_directory = directory


def reset_directory() -> None:
    global _current_directory
    _current_directory = None
