from abc import ABC, abstractmethod

from library_sync.models import AuthGrant, Resource, UploadFile


class Transport(ABC):
    @abstractmethod
    async def list_resources(self) -> list[Resource]:
        """Fetch every uploaded resource the backend knows about."""
        pass

    @abstractmethod
    async def upload_resource(self, upload: UploadFile, token: str) -> Resource:
        """Upload a file and return the record the backend created."""
        pass

    @abstractmethod
    async def delete_resource(self, resource_id: str, token: str) -> None:
        pass

    @abstractmethod
    async def authorize(self, credential: str) -> AuthGrant:
        """Exchange a credential for a time-bounded admin token."""
        pass

    def view_url(self, resource_id: str) -> str | None:
        """URL the external viewer should load for ``resource_id``, if any."""
        return None

    async def aclose(self) -> None:
        """Release connections held by the transport."""
        return None
