import logging
from typing import Any

import httpx

from library_sync.errors import TransportError
from library_sync.models import AuthGrant, Resource, ResourceOrigin, UploadFile, title_from_filename
from library_sync.transport import Transport


logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:3000/api"
DEFAULT_ASSET_ORIGIN = "http://localhost:3000"
ADMIN_TOKEN_HEADER = "X-Admin-Token"


def absolute_url(url: str, asset_origin: str = DEFAULT_ASSET_ORIGIN) -> str:
    if url.startswith("http"):
        return url
    if url.startswith("/assets/"):
        return f"{asset_origin.rstrip('/')}{url}"
    return url


def resource_from_payload(data: dict[str, Any], asset_origin: str = DEFAULT_ASSET_ORIGIN) -> Resource:
    resource_id = data.get("id")
    if resource_id is None or resource_id == "":
        raise TransportError("Backend returned a document without an id.")

    original_name = data.get("originalName") or data.get("filename") or ""
    url = data.get("url")
    size = data.get("fileSize")
    return Resource(
        id=str(resource_id),
        title=data.get("title") or title_from_filename(original_name),
        description=data.get("description") or "",
        origin=ResourceOrigin.UPLOADED,
        size_bytes=int(size) if isinstance(size, (int, float)) else None,
        uploaded_at=data.get("uploadDate"),
        source_url=absolute_url(url, asset_origin) if isinstance(url, str) and url else None,
    )


def _error_message(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        for key in ("message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return None


class HttpTransport(Transport):
    """Transport backed by the document service's REST API.

    Endpoints: ``GET /pdfs``, ``POST /upload-pdf``, ``DELETE /pdfs/{id}``,
    ``POST /admin/session``. The admin token travels in ``X-Admin-Token``.
    """

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        asset_origin: str = DEFAULT_ASSET_ORIGIN,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.asset_origin = asset_origin
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, f"{self.api_url}{path}", **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            message = _error_message(e.response)
            logger.warning("%s %s failed with HTTP %d", method, path, status)
            raise TransportError(message, status=status) from e
        except httpx.RequestError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise TransportError(status=None) from e
        return response

    def _json(self, response: httpx.Response) -> dict[str, Any]:
        try:
            body = response.json()
        except ValueError as e:
            raise TransportError("Backend returned an invalid response.", status=response.status_code) from e
        if not isinstance(body, dict):
            raise TransportError("Backend returned an invalid response.", status=response.status_code)
        return body

    async def list_resources(self) -> list[Resource]:
        response = await self._request("GET", "/pdfs")
        items = self._json(response).get("pdfs", [])
        return [resource_from_payload(item, self.asset_origin) for item in items if isinstance(item, dict)]

    async def upload_resource(self, upload: UploadFile, token: str) -> Resource:
        response = await self._request(
            "POST",
            "/upload-pdf",
            headers={ADMIN_TOKEN_HEADER: token},
            files={"pdf": (upload.filename, upload.content, upload.mime_type)},
        )
        data = self._json(response).get("data")
        if not isinstance(data, dict):
            raise TransportError("Backend returned an invalid response.", status=response.status_code)
        return resource_from_payload(data, self.asset_origin)

    async def delete_resource(self, resource_id: str, token: str) -> None:
        await self._request("DELETE", f"/pdfs/{resource_id}", headers={ADMIN_TOKEN_HEADER: token})

    async def authorize(self, credential: str) -> AuthGrant:
        response = await self._request("POST", "/admin/session", json={"credential": credential})
        body = self._json(response)
        token = body.get("token")
        expires_at = body.get("expiresAt")
        if not isinstance(token, str) or not token or not isinstance(expires_at, (int, float)):
            raise TransportError("Backend returned an invalid session.", status=response.status_code)
        return AuthGrant(token=token, expires_at_ms=int(expires_at))

    def view_url(self, resource_id: str) -> str:
        return f"{self.api_url}/pdfs/{resource_id}/view"
