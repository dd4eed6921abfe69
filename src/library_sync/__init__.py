from library_sync.client import LibraryClient
from library_sync.config import SyncConfig, get_sync_config
from library_sync.errors import AuthError, AuthorizationError, LibrarySyncError, TransportError, ValidationError
from library_sync.models import (
    DisplayMode,
    MutationKind,
    MutationState,
    PendingMutation,
    Resource,
    ResourceOrigin,
    Session,
    UploadFile,
)

__all__ = [
    "LibraryClient",
    "SyncConfig",
    "get_sync_config",
    "LibrarySyncError",
    "ValidationError",
    "AuthorizationError",
    "AuthError",
    "TransportError",
    "DisplayMode",
    "MutationKind",
    "MutationState",
    "PendingMutation",
    "Resource",
    "ResourceOrigin",
    "Session",
    "UploadFile",
]
