import itertools
import logging
from typing import Callable, Iterable

from library_sync.contracts.mutation_lifecycle import is_terminal, validate_transition
from library_sync.models import MutationKind, MutationState, PendingMutation, Resource, ResourceOrigin


logger = logging.getLogger(__name__)

ViewObserver = Callable[[list[Resource]], None]

_VISIBLE_STATES = {MutationState.OPTIMISTIC, MutationState.CONFIRMED}


def _dedupe(resources: Iterable[Resource]) -> list[Resource]:
    seen: set[str] = set()
    unique: list[Resource] = []
    for resource in resources:
        if resource.id in seen:
            continue
        seen.add(resource.id)
        unique.append(resource)
    return unique


class ReconciliationEngine:
    """Owns the merged resource list.

    The view is recomputed from three sources on every read: pending adds
    (newest first), the latest backend snapshot, then the baseline. The first
    occurrence of an id wins and pending removals hide an id everywhere.
    Optimistic changes never touch the snapshot or the baseline, so dropping
    a pending entry restores the previous order without disturbing others.

    Fetches are stamped when they start. A confirmed mutation stays pending
    until a fetch that started after its confirmation has been applied, so a
    list request already in flight cannot undo it.
    """

    def __init__(self, baseline: Iterable[Resource] = ()) -> None:
        self._baseline: tuple[Resource, ...] = tuple(_dedupe(baseline))
        self._snapshot: list[Resource] = []
        self._pending: list[PendingMutation] = []
        self._dismissed: set[str] = set()
        self._fetches_started = 0
        self._applied_ticket = 0
        self._fetch_count = 0
        self._ids = itertools.count(1)
        self._observers: list[ViewObserver] = []
        self._last_view = self.view()

    @property
    def baseline(self) -> tuple[Resource, ...]:
        return self._baseline

    @property
    def snapshot(self) -> list[Resource]:
        return list(self._snapshot)

    @property
    def pending(self) -> tuple[PendingMutation, ...]:
        return tuple(self._pending)

    @property
    def fetch_count(self) -> int:
        return self._fetch_count

    def view(self) -> list[Resource]:
        hidden = set(self._dismissed)
        hidden.update(
            mutation.resource_id
            for mutation in self._pending
            if mutation.kind is MutationKind.REMOVE and mutation.status in _VISIBLE_STATES
        )
        added = [
            mutation.resource
            for mutation in reversed(self._pending)
            if mutation.kind is MutationKind.ADD
            and mutation.status in _VISIBLE_STATES
            and mutation.resource is not None
        ]
        merged = itertools.chain(added, self._snapshot, self._baseline)
        return [resource for resource in _dedupe(merged) if resource.id not in hidden]

    def subscribe(self, observer: ViewObserver) -> Callable[[], None]:
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self) -> None:
        current = self.view()
        if current == self._last_view:
            return
        self._last_view = current
        logger.debug("View changed: %d resources", len(current))
        for observer in list(self._observers):
            observer(list(current))

    def begin_fetch(self) -> int:
        """Stamp a list request as it starts; pass the ticket to ``apply_fetch``."""
        self._fetches_started += 1
        return self._fetches_started

    def apply_fetch(self, resources: Iterable[Resource], ticket: int | None = None) -> bool:
        """Replace the backend snapshot.

        Returns False when a fetch that started later has already been applied;
        the older response is then discarded.
        """
        if ticket is None:
            ticket = self.begin_fetch()
        if ticket < self._applied_ticket:
            logger.debug("Discarding fetch #%d, #%d already applied", ticket, self._applied_ticket)
            return False
        self._applied_ticket = ticket
        self._snapshot = _dedupe(resources)
        self._fetch_count += 1
        logger.debug("Applied fetch #%d with %d resources", ticket, len(self._snapshot))
        self._notify()
        return True

    def _origin_of(self, resource_id: str) -> ResourceOrigin:
        if any(resource.id == resource_id for resource in self._snapshot):
            return ResourceOrigin.UPLOADED
        if any(resource.id == resource_id for resource in self._baseline):
            return ResourceOrigin.BASELINE
        return ResourceOrigin.UPLOADED

    def _next_id(self) -> str:
        return f"mut-{next(self._ids)}"

    def _append(self, mutation: PendingMutation) -> PendingMutation:
        validate_transition(mutation.status, MutationState.OPTIMISTIC)
        mutation.status = MutationState.OPTIMISTIC
        self._pending.append(mutation)
        self._notify()
        return mutation

    def apply_optimistic_add(self, resource: Resource) -> PendingMutation:
        return self._append(
            PendingMutation(
                mutation_id=self._next_id(),
                kind=MutationKind.ADD,
                resource_id=resource.id,
                origin=resource.origin,
                resource=resource,
            )
        )

    def apply_optimistic_remove(
        self, resource_id: str, origin: ResourceOrigin | None = None
    ) -> PendingMutation:
        return self._append(
            PendingMutation(
                mutation_id=self._next_id(),
                kind=MutationKind.REMOVE,
                resource_id=resource_id,
                origin=origin or self._origin_of(resource_id),
            )
        )

    def _drop(self, mutation: PendingMutation) -> None:
        self._pending = [item for item in self._pending if item.mutation_id != mutation.mutation_id]

    def resolve(
        self,
        mutation: PendingMutation,
        outcome: MutationState,
        resource: Resource | None = None,
        expect_fetch: bool = True,
    ) -> None:
        """Settle ``mutation`` as confirmed or failed.

        A confirmed add may carry the backend's record in ``resource``. Confirmed
        uploads and deletes stay pending until ``release_settled`` sees a fetch
        that started after confirmation, unless ``expect_fetch`` is false.
        """
        if not any(item.mutation_id == mutation.mutation_id for item in self._pending):
            raise ValueError(f"unknown pending mutation: {mutation.mutation_id}")
        if is_terminal(mutation.status):
            raise ValueError(f"mutation already resolved: {mutation.mutation_id}")
        validate_transition(mutation.status, outcome)
        mutation.status = outcome

        if outcome is MutationState.FAILED:
            self._drop(mutation)
        elif mutation.kind is MutationKind.ADD:
            if resource is not None:
                mutation.resource = resource
                mutation.resource_id = resource.id
            in_snapshot = any(item.id == mutation.resource_id for item in self._snapshot)
            if not expect_fetch or in_snapshot:
                self._drop(mutation)
            else:
                mutation.confirmed_at_fetch = self._fetches_started
        elif mutation.origin is ResourceOrigin.BASELINE:
            self._drop(mutation)
            self._dismissed.add(mutation.resource_id)
        else:
            self._snapshot = [item for item in self._snapshot if item.id != mutation.resource_id]
            self._pending = [
                item
                for item in self._pending
                if not (
                    item.kind is MutationKind.ADD
                    and item.status is MutationState.CONFIRMED
                    and item.resource_id == mutation.resource_id
                )
            ]
            if expect_fetch:
                mutation.confirmed_at_fetch = self._fetches_started
            else:
                self._drop(mutation)
        self._notify()

    def release_settled(self) -> list[PendingMutation]:
        """Drop confirmed mutations covered by a fetch started after confirmation."""
        settled = [
            mutation
            for mutation in self._pending
            if mutation.status is MutationState.CONFIRMED
            and mutation.confirmed_at_fetch is not None
            and mutation.confirmed_at_fetch < self._applied_ticket
        ]
        if not settled:
            return []
        settled_ids = {mutation.mutation_id for mutation in settled}
        self._pending = [item for item in self._pending if item.mutation_id not in settled_ids]
        self._notify()
        return settled
