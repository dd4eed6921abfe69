import os
from dataclasses import dataclass


@dataclass(frozen=True)
class SyncConfig:
    api_url: str
    asset_origin: str
    admin_credential: str
    session_file: str
    settle_delay_ms: int
    http_timeout: float
    max_upload_bytes: int
    log_level: str


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def get_sync_config() -> SyncConfig:
    return SyncConfig(
        api_url=os.getenv("LIBRARY_SYNC_API_URL", "http://localhost:3000/api"),
        asset_origin=os.getenv("LIBRARY_SYNC_ASSET_ORIGIN", "http://localhost:3000"),
        admin_credential=os.getenv("LIBRARY_SYNC_ADMIN_CREDENTIAL", ""),
        session_file=os.getenv("LIBRARY_SYNC_SESSION_FILE", ".library_sync/session.json"),
        settle_delay_ms=_int_env("LIBRARY_SYNC_SETTLE_DELAY_MS", 1500),
        http_timeout=_float_env("LIBRARY_SYNC_HTTP_TIMEOUT", 30.0),
        max_upload_bytes=_int_env("LIBRARY_SYNC_MAX_UPLOAD_BYTES", 10_485_760),
        log_level=os.getenv("LIBRARY_SYNC_LOG_LEVEL", "INFO").upper(),
    )
