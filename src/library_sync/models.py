import mimetypes
import re
import uuid
from dataclasses import dataclass
from enum import Enum
from pathlib import Path


PLACEHOLDER_DESCRIPTION = "Uploaded PDF document. Click to view more details about this document."


class ResourceOrigin(str, Enum):
    BASELINE = "baseline"
    UPLOADED = "uploaded"


class MutationKind(str, Enum):
    ADD = "add"
    REMOVE = "remove"


class MutationState(str, Enum):
    REQUESTED = "requested"
    OPTIMISTIC = "optimistic"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class DisplayMode(str, Enum):
    LIBRARY = "library"
    RECENT = "recent"
    ABOUT = "about"


@dataclass(frozen=True)
class Resource:
    id: str
    title: str
    description: str
    origin: ResourceOrigin
    size_bytes: int | None = None
    uploaded_at: str | None = None
    source_url: str | None = None


@dataclass
class PendingMutation:
    """Handle for one in-flight optimistic change.

    ``resource`` is set for adds, ``resource_id`` for both kinds. A confirmed
    add swaps its placeholder resource for the record the backend returned.
    """

    mutation_id: str
    kind: MutationKind
    resource_id: str
    origin: ResourceOrigin
    resource: Resource | None = None
    status: MutationState = MutationState.REQUESTED
    confirmed_at_fetch: int | None = None


@dataclass(frozen=True)
class Session:
    token: str | None
    expires_at_ms: int | None

    def is_authorized(self, now_ms: int) -> bool:
        return self.token is not None and self.expires_at_ms is not None and now_ms < self.expires_at_ms


@dataclass(frozen=True)
class AuthGrant:
    token: str
    expires_at_ms: int


@dataclass(frozen=True)
class UploadFile:
    filename: str
    mime_type: str
    size_bytes: int
    content: bytes = b""

    @classmethod
    def from_path(cls, path: str | Path) -> "UploadFile":
        file_path = Path(path)
        content = file_path.read_bytes()
        mime_type, _ = mimetypes.guess_type(file_path.name)
        return cls(
            filename=file_path.name,
            mime_type=mime_type or "application/octet-stream",
            size_bytes=len(content),
            content=content,
        )


def title_from_filename(filename: str) -> str:
    raw = re.sub(r"\.pdf$", "", filename, flags=re.IGNORECASE)
    spaced = re.sub(r"[_-]", " ", raw)
    return " ".join(word[:1].upper() + word[1:].lower() for word in spaced.split(" "))


def placeholder_resource(upload: UploadFile) -> Resource:
    return Resource(
        id=f"local-{uuid.uuid4().hex}",
        title=title_from_filename(upload.filename),
        description=PLACEHOLDER_DESCRIPTION,
        origin=ResourceOrigin.UPLOADED,
        size_bytes=upload.size_bytes,
    )
