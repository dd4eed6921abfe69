from library_sync.models import MutationState


_ALLOWED_TRANSITIONS: dict[MutationState, set[MutationState]] = {
    MutationState.REQUESTED: {MutationState.OPTIMISTIC},
    MutationState.OPTIMISTIC: {MutationState.CONFIRMED, MutationState.FAILED},
    MutationState.CONFIRMED: set(),
    MutationState.FAILED: set(),
}

TERMINAL_STATES = {MutationState.CONFIRMED, MutationState.FAILED}


def can_transition(current: MutationState, target: MutationState) -> bool:
    return target in _ALLOWED_TRANSITIONS.get(current, set())


def validate_transition(current: MutationState, target: MutationState) -> None:
    if not can_transition(current, target):
        raise ValueError(f"invalid mutation transition: {current.value} -> {target.value}")


def is_terminal(state: MutationState) -> bool:
    return state in TERMINAL_STATES
