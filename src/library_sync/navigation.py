import logging
from dataclasses import dataclass

from library_sync.contracts.route_policy import classify, is_privileged
from library_sync.errors import AuthError
from library_sync.models import DisplayMode
from library_sync.session.store import SessionStore


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NavigationOutcome:
    path: str
    mode: DisplayMode
    privileged: bool
    acquired: bool = False
    revoked: bool = False
    error: str | None = None


class RouteModeMapper:
    """Turns navigation events into a display mode and session changes.

    This is the only caller of ``SessionStore.acquire`` and ``revoke``:
    entering the privileged prefix acquires, leaving it revokes.
    """

    def __init__(self, session_store: SessionStore, credential: str) -> None:
        self._session_store = session_store
        self._credential = credential
        self._path: str | None = None
        self._mode = DisplayMode.LIBRARY

    @property
    def mode(self) -> DisplayMode:
        return self._mode

    @property
    def path(self) -> str | None:
        return self._path

    async def on_navigate(self, path: str) -> NavigationOutcome:
        was_privileged = self._path is not None and is_privileged(self._path)
        now_privileged = is_privileged(path)
        self._path = path
        self._mode = classify(path)

        if now_privileged and not was_privileged:
            try:
                await self._session_store.acquire(self._credential)
            except AuthError as exc:
                logger.warning("Could not acquire admin session on %s: %s", path, exc)
                return NavigationOutcome(path, self._mode, True, error=str(exc))
            return NavigationOutcome(path, self._mode, True, acquired=True)

        if was_privileged and not now_privileged:
            self._session_store.revoke()
            return NavigationOutcome(path, self._mode, False, revoked=True)

        return NavigationOutcome(path, self._mode, now_privileged)
