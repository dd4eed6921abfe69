from urllib.parse import urlsplit

from library_sync.models import DisplayMode


PRIVILEGED_PREFIX = "/admin"

_SECTION_MODES = {
    "recent": DisplayMode.RECENT,
    "about": DisplayMode.ABOUT,
}


def _path_only(path: str) -> str:
    return urlsplit(path or "/").path or "/"


def is_privileged(path: str) -> bool:
    return _path_only(path).startswith(PRIVILEGED_PREFIX)


def classify(path: str) -> DisplayMode:
    """Map a navigation path to the section it displays.

    Paths under the privileged prefix always classify as the library.
    """
    if is_privileged(path):
        return DisplayMode.LIBRARY

    segments = [segment for segment in _path_only(path).split("/") if segment]
    if not segments:
        return DisplayMode.LIBRARY
    return _SECTION_MODES.get(segments[0], DisplayMode.LIBRARY)
