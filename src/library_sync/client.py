from typing import Callable, Iterable

from library_sync.clock import Clock, SystemClock
from library_sync.config import SyncConfig
from library_sync.models import DisplayMode, PendingMutation, Resource, ResourceOrigin, UploadFile
from library_sync.navigation import NavigationOutcome, RouteModeMapper
from library_sync.session.storage import JsonFileKeyValueStore, KeyValueStore
from library_sync.session.store import SessionStore
from library_sync.sync.coordinator import MutationCoordinator
from library_sync.sync.reconcile import ReconciliationEngine
from library_sync.sync.scheduler import AsyncioSettleScheduler, SettleScheduler
from library_sync.transport import Transport


class LibraryClient:
    """Entry point for a rendering layer.

    Wires the session store, navigation mapper, reconciliation engine and
    mutation coordinator together and passes the current session explicitly
    into every mutating call.
    """

    def __init__(
        self,
        transport: Transport,
        storage: KeyValueStore,
        credential: str,
        baseline: Iterable[Resource] = (),
        clock: Clock | None = None,
        scheduler: SettleScheduler | None = None,
        settle_delay_ms: int = 1500,
        max_upload_bytes: int = 10_485_760,
    ) -> None:
        self._clock = clock or SystemClock()
        self.transport = transport
        self.session_store = SessionStore(transport, storage, self._clock)
        self.navigator = RouteModeMapper(self.session_store, credential)
        self.engine = ReconciliationEngine(baseline)
        self.scheduler = scheduler or SettleScheduler(self._clock)
        self.coordinator = MutationCoordinator(
            self.engine,
            transport,
            scheduler=self.scheduler,
            clock=self._clock,
            settle_delay_ms=settle_delay_ms,
            max_upload_bytes=max_upload_bytes,
        )

    @classmethod
    def from_config(cls, config: SyncConfig, baseline: Iterable[Resource] = ()) -> "LibraryClient":
        from library_sync.transport.http import HttpTransport

        transport = HttpTransport(
            api_url=config.api_url,
            asset_origin=config.asset_origin,
            timeout=config.http_timeout,
        )
        clock = SystemClock()
        return cls(
            transport=transport,
            storage=JsonFileKeyValueStore(config.session_file),
            credential=config.admin_credential,
            baseline=baseline,
            clock=clock,
            scheduler=AsyncioSettleScheduler(clock),
            settle_delay_ms=config.settle_delay_ms,
            max_upload_bytes=config.max_upload_bytes,
        )

    @property
    def mode(self) -> DisplayMode:
        return self.navigator.mode

    @property
    def can_mutate(self) -> bool:
        return self.session_store.is_authorized

    async def navigate(self, path: str) -> NavigationOutcome:
        return await self.navigator.on_navigate(path)

    async def refresh(self) -> None:
        await self.coordinator.refresh()

    def view(self) -> list[Resource]:
        return self.engine.view()

    def recent_uploads(self) -> list[Resource]:
        return [resource for resource in self.engine.view() if resource.origin is ResourceOrigin.UPLOADED]

    def visible_resources(self) -> list[Resource]:
        if self.mode is DisplayMode.RECENT:
            return self.recent_uploads()
        if self.mode is DisplayMode.ABOUT:
            return []
        return self.engine.view()

    def resource(self, resource_id: str) -> Resource | None:
        for resource in self.engine.view():
            if resource.id == resource_id:
                return resource
        return None

    def viewer_url(self, resource_id: str) -> str | None:
        resource = self.resource(resource_id)
        if resource is None:
            return None
        if resource.origin is ResourceOrigin.UPLOADED:
            return self.transport.view_url(resource_id) or resource.source_url
        return resource.source_url

    async def upload(self, upload: UploadFile) -> PendingMutation:
        return await self.coordinator.upload(upload, self.session_store.current())

    async def remove(self, resource_id: str) -> PendingMutation:
        session = self.session_store.current()
        resource = self.resource(resource_id)
        origin = resource.origin if resource is not None else ResourceOrigin.UPLOADED
        return await self.coordinator.remove(resource_id, session, origin)

    def subscribe_view(self, observer: Callable[[list[Resource]], None]) -> Callable[[], None]:
        return self.engine.subscribe(observer)

    def subscribe_authorization(self, observer: Callable[[bool], None]) -> Callable[[], None]:
        return self.session_store.subscribe(observer)

    async def aclose(self) -> None:
        await self.transport.aclose()
