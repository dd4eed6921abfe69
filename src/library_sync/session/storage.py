import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path


logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    @abstractmethod
    def get(self, key: str) -> str | None:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete ``key``; missing keys are ignored."""
        pass


class InMemoryKeyValueStore(KeyValueStore):
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._items: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove(self, key: str) -> None:
        self._items.pop(key, None)

    def snapshot(self) -> dict[str, str]:
        return dict(self._items)


class JsonFileKeyValueStore(KeyValueStore):
    """Key-value store persisted as one JSON object on disk.

    Stands in for browser session storage: the owning process deletes the file
    with ``clear()`` when its session ends.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._items = self._load()

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(key): str(value) for key, value in data.items()}

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self._items, f, indent=2)

    def get(self, key: str) -> str | None:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        self._items[key] = value
        self._save()

    def remove(self, key: str) -> None:
        if key not in self._items:
            return
        del self._items[key]
        self._save()

    def clear(self) -> None:
        self._items = {}
        if self.path.exists():
            self.path.unlink()
