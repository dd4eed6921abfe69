import uuid
from datetime import datetime, timezone

from library_sync.clock import Clock, SystemClock
from library_sync.errors import TransportError
from library_sync.models import AuthGrant, Resource, ResourceOrigin, UploadFile, title_from_filename
from library_sync.transport import Transport


DEFAULT_SESSION_TTL_MS = 30 * 60 * 1000


class InMemoryTransport(Transport):
    """In-process backend with the same contract as the REST service.

    Failures are injected per operation with ``fail_next``; every call is
    appended to ``calls`` as ``(operation, argument)``.
    """

    def __init__(
        self,
        credential: str = "",
        resources: list[Resource] | None = None,
        clock: Clock | None = None,
        session_ttl_ms: int = DEFAULT_SESSION_TTL_MS,
    ) -> None:
        self._credential = credential
        self._clock = clock or SystemClock()
        self._session_ttl_ms = session_ttl_ms
        self._resources: list[Resource] = list(resources or [])
        self._tokens: dict[str, int] = {}
        self._failures: dict[str, list[TransportError]] = {}
        self.calls: list[tuple[str, str]] = []

    def fail_next(self, operation: str, error: TransportError | None = None) -> None:
        self._failures.setdefault(operation, []).append(error or TransportError(status=500))

    def _maybe_fail(self, operation: str) -> None:
        queued = self._failures.get(operation)
        if queued:
            raise queued.pop(0)

    def _check_token(self, token: str) -> None:
        expires_at = self._tokens.get(token)
        if expires_at is None or self._clock.now_ms() >= expires_at:
            raise TransportError("Admin token is missing or expired.", status=401)

    @property
    def resources(self) -> list[Resource]:
        return list(self._resources)

    async def list_resources(self) -> list[Resource]:
        self.calls.append(("list", ""))
        self._maybe_fail("list")
        return list(self._resources)

    async def upload_resource(self, upload: UploadFile, token: str) -> Resource:
        self.calls.append(("upload", upload.filename))
        self._maybe_fail("upload")
        self._check_token(token)
        resource_id = uuid.uuid4().hex
        created = Resource(
            id=resource_id,
            title=title_from_filename(upload.filename),
            description="",
            origin=ResourceOrigin.UPLOADED,
            size_bytes=upload.size_bytes,
            uploaded_at=datetime.now(timezone.utc).isoformat(),
            source_url=f"/assets/{resource_id}.pdf",
        )
        self._resources.insert(0, created)
        return created

    async def delete_resource(self, resource_id: str, token: str) -> None:
        self.calls.append(("delete", resource_id))
        self._maybe_fail("delete")
        self._check_token(token)
        remaining = [item for item in self._resources if item.id != resource_id]
        if len(remaining) == len(self._resources):
            raise TransportError("PDF not found", status=404)
        self._resources = remaining

    async def authorize(self, credential: str) -> AuthGrant:
        self.calls.append(("authorize", ""))
        self._maybe_fail("authorize")
        if not self._credential or credential != self._credential:
            raise TransportError("Invalid admin credential.", status=401)
        token = uuid.uuid4().hex
        expires_at = self._clock.now_ms() + self._session_ttl_ms
        self._tokens[token] = expires_at
        return AuthGrant(token=token, expires_at_ms=expires_at)
