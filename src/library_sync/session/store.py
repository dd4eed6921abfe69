import logging
from typing import Callable

from library_sync.clock import Clock, SystemClock
from library_sync.errors import AuthError, TransportError
from library_sync.models import Session
from library_sync.session.storage import KeyValueStore
from library_sync.transport import Transport


logger = logging.getLogger(__name__)

TOKEN_KEY = "adminToken"
EXPIRES_KEY = "adminTokenExpires"

AuthObserver = Callable[[bool], None]


class SessionStore:
    """Single source of truth for the admin session.

    Expiry is checked lazily on every read. Observers hear about changes of the
    authorized flag only, never about reads that leave it unchanged.
    """

    def __init__(self, transport: Transport, storage: KeyValueStore, clock: Clock | None = None) -> None:
        self._transport = transport
        self._storage = storage
        self._clock = clock or SystemClock()
        self._observers: list[AuthObserver] = []
        self._session = self._restore()
        self._authorized = self._session is not None and self._session.is_authorized(self._clock.now_ms())

    def _restore(self) -> Session | None:
        token = self._storage.get(TOKEN_KEY)
        expires_raw = self._storage.get(EXPIRES_KEY)
        if token is None and expires_raw is None:
            return None
        if token is None or expires_raw is None:
            self._clear_persisted()
            return None
        try:
            expires_at_ms = int(expires_raw)
        except ValueError:
            self._clear_persisted()
            return None
        return Session(token=token, expires_at_ms=expires_at_ms)

    def _clear_persisted(self) -> None:
        self._storage.remove(TOKEN_KEY)
        self._storage.remove(EXPIRES_KEY)

    def _set_authorized(self, authorized: bool) -> None:
        if authorized == self._authorized:
            return
        self._authorized = authorized
        for observer in list(self._observers):
            observer(authorized)

    def _clear(self) -> None:
        self._session = None
        self._clear_persisted()
        self._set_authorized(False)

    @property
    def storage(self) -> KeyValueStore:
        return self._storage

    async def acquire(self, credential: str) -> Session:
        try:
            grant = await self._transport.authorize(credential)
        except TransportError as exc:
            logger.warning("Admin authorization rejected: %s", exc.message)
            self._clear()
            raise AuthError(AuthError.REJECTED, exc.message) from exc

        session = Session(token=grant.token, expires_at_ms=grant.expires_at_ms)
        self._session = session
        self._storage.set(TOKEN_KEY, grant.token)
        self._storage.set(EXPIRES_KEY, str(grant.expires_at_ms))
        logger.info("Admin session acquired, expires at %d", grant.expires_at_ms)
        self._set_authorized(session.is_authorized(self._clock.now_ms()))
        return session

    def current(self) -> Session | None:
        if self._session is None:
            self._set_authorized(False)
            return None
        if not self._session.is_authorized(self._clock.now_ms()):
            logger.info("Admin session expired")
            self._clear()
            return None
        self._set_authorized(True)
        return self._session

    @property
    def is_authorized(self) -> bool:
        return self.current() is not None

    def revoke(self) -> None:
        if self._session is not None:
            logger.info("Admin session revoked")
        self._clear()

    def subscribe(self, observer: AuthObserver) -> Callable[[], None]:
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe
