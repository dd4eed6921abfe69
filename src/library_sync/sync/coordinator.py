import logging

from library_sync.clock import Clock, SystemClock
from library_sync.contracts.upload_policy import MAX_UPLOAD_BYTES, evaluate_upload
from library_sync.errors import AuthorizationError, TransportError, ValidationError
from library_sync.models import (
    MutationState,
    PendingMutation,
    ResourceOrigin,
    Session,
    UploadFile,
    placeholder_resource,
)
from library_sync.sync.reconcile import ReconciliationEngine
from library_sync.sync.scheduler import SettleScheduler
from library_sync.transport import Transport


logger = logging.getLogger(__name__)

DEFAULT_SETTLE_DELAY_MS = 1500


class MutationCoordinator:
    """Drives uploads and deletes through optimistic apply, confirm or rollback.

    Authorization and validation are checked before anything touches the
    engine or the transport. Each call returns its own mutation handle; calls
    may overlap freely.
    """

    def __init__(
        self,
        engine: ReconciliationEngine,
        transport: Transport,
        scheduler: SettleScheduler | None = None,
        clock: Clock | None = None,
        settle_delay_ms: int = DEFAULT_SETTLE_DELAY_MS,
        max_upload_bytes: int = MAX_UPLOAD_BYTES,
    ) -> None:
        self._engine = engine
        self._transport = transport
        self._clock = clock or SystemClock()
        self._scheduler = scheduler or SettleScheduler(self._clock)
        self._settle_delay_ms = settle_delay_ms
        self._max_upload_bytes = max_upload_bytes

    @property
    def settle_delay_ms(self) -> int:
        return self._settle_delay_ms

    @property
    def max_upload_bytes(self) -> int:
        return self._max_upload_bytes

    def _require_token(self, session: Session | None) -> str:
        if session is None or session.token is None or not session.is_authorized(self._clock.now_ms()):
            raise AuthorizationError()
        return session.token

    async def upload(self, upload: UploadFile, session: Session | None) -> PendingMutation:
        token = self._require_token(session)
        decision = evaluate_upload(upload, self._max_upload_bytes)
        if not decision.allowed:
            raise ValidationError(decision.message)

        mutation = self._engine.apply_optimistic_add(placeholder_resource(upload))
        try:
            created = await self._transport.upload_resource(upload, token)
        except TransportError as exc:
            logger.warning("Upload of %s failed, rolling back: %s", upload.filename, exc.message)
            self._engine.resolve(mutation, MutationState.FAILED)
            raise

        self._engine.resolve(mutation, MutationState.CONFIRMED, resource=created)
        logger.info("Upload confirmed as %s", created.id)
        self._scheduler.schedule(self._settle_delay_ms, self.settle)
        return mutation

    async def remove(
        self, resource_id: str, session: Session | None, origin: ResourceOrigin
    ) -> PendingMutation:
        token = self._require_token(session)

        mutation = self._engine.apply_optimistic_remove(resource_id, origin)
        if origin is ResourceOrigin.BASELINE:
            self._engine.resolve(mutation, MutationState.CONFIRMED)
            logger.info("Baseline resource %s removed locally", resource_id)
            return mutation

        try:
            await self._transport.delete_resource(resource_id, token)
        except TransportError as exc:
            logger.warning("Delete of %s failed, rolling back: %s", resource_id, exc.message)
            self._engine.resolve(mutation, MutationState.FAILED)
            raise

        self._engine.resolve(mutation, MutationState.CONFIRMED)
        logger.info("Delete of %s confirmed", resource_id)
        self._scheduler.schedule(self._settle_delay_ms, self.settle)
        return mutation

    async def refresh(self) -> None:
        ticket = self._engine.begin_fetch()
        resources = await self._transport.list_resources()
        self._engine.apply_fetch(resources, ticket)
        self._engine.release_settled()

    async def settle(self) -> None:
        try:
            await self.refresh()
        except TransportError as exc:
            logger.warning("Settle re-fetch failed, not retrying: %s", exc.message)
