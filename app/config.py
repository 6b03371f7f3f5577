import os
from dataclasses import dataclass

from dotenv import load_dotenv


load_dotenv()

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "google/gemini-3-flash-preview"

METADATA_POLICIES = ("replace", "keep_first")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "")
    if not raw.strip():
        return default
    return float(raw)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    if not raw.strip():
        return default
    return int(raw)


@dataclass(frozen=True)
class Settings:
    api_key: str = ""
    base_url: str = OPENROUTER_BASE_URL
    model: str = DEFAULT_MODEL
    request_timeout_s: float = 240.0
    max_retries: int = 0
    max_upload_bytes: int = 20 * 1024 * 1024
    session_ttl_s: int = 60 * 60
    metadata_policy: str = "replace"
    log_level: str = "INFO"


def load_settings() -> Settings:
    """
    Read settings from the environment (.env is loaded on import).
    OPENROUTER_API_KEY is not validated here; a missing key shows up as a request failure.
    """
    policy = os.getenv("TURJUMAN_METADATA_POLICY", "replace").strip() or "replace"
    if policy not in METADATA_POLICIES:
        raise ValueError(f"TURJUMAN_METADATA_POLICY must be one of {METADATA_POLICIES}, got {policy!r}")
    return Settings(
        api_key=os.getenv("OPENROUTER_API_KEY", ""),
        base_url=os.getenv("TURJUMAN_BASE_URL", OPENROUTER_BASE_URL),
        model=os.getenv("TURJUMAN_MODEL", DEFAULT_MODEL),
        request_timeout_s=_env_float("TURJUMAN_REQUEST_TIMEOUT_S", 240.0),
        max_retries=max(0, _env_int("TURJUMAN_MAX_RETRIES", 0)),
        max_upload_bytes=int(_env_float("TURJUMAN_MAX_UPLOAD_MB", 20.0) * 1024 * 1024),
        session_ttl_s=_env_int("TURJUMAN_SESSION_TTL_S", 60 * 60),
        metadata_policy=policy,
        log_level=os.getenv("TURJUMAN_LOG_LEVEL", "INFO").upper(),
    )
