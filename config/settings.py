"""Configuration helpers for the ProVision Prompt Crafter."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_STORAGE_QUOTA = 5 * 1024 * 1024


@dataclass(slots=True)
class AppConfig:
    """Centralized application configuration."""

    host: str = "127.0.0.1"
    port: int = 7860
    proxy_url: Optional[str] = None
    api_key_env: str = "API_KEY"
    gemini_model_id: str = "gemini-2.5-flash"
    storage_dir: Path = Path("data")
    storage_quota_bytes: int = DEFAULT_STORAGE_QUOTA
    history_key: str = "promptHistory"
    request_timeout: Optional[float] = None
    log_dir: Path = Path("logs")
    log_level: str = "INFO"

    def resolved_proxy_url(self) -> str:
        """Return the base URL the generation client talks to."""
        return self.proxy_url or f"http://{self.host}:{self.port}"


def _load_env_file(path: Path) -> None:
    """Populate environment variables from a simple KEY=VALUE .env file."""
    if not path.exists():
        return

    for line in path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, value = stripped.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip().strip('"').strip("'"))


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _float_env(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """Return an AppConfig instance with environment-aware settings."""
    env_path = Path(config_path) if config_path else Path(".env")
    _load_env_file(env_path)

    defaults = AppConfig()
    storage_dir = Path(os.getenv("PROMPT_CRAFTER_STORAGE_DIR", str(defaults.storage_dir)))
    log_dir = Path(os.getenv("PROMPT_CRAFTER_LOG_DIR", str(defaults.log_dir)))

    return AppConfig(
        host=os.getenv("PROMPT_CRAFTER_HOST", defaults.host),
        port=_int_env("PROMPT_CRAFTER_PORT", defaults.port),
        proxy_url=os.getenv("PROMPT_CRAFTER_PROXY_URL") or None,
        gemini_model_id=os.getenv("GEMINI_MODEL") or defaults.gemini_model_id,
        storage_dir=storage_dir.expanduser(),
        storage_quota_bytes=_int_env("PROMPT_CRAFTER_STORAGE_QUOTA", defaults.storage_quota_bytes),
        request_timeout=_float_env("PROMPT_CRAFTER_REQUEST_TIMEOUT"),
        log_dir=log_dir.expanduser(),
        log_level=os.getenv("PROMPT_CRAFTER_LOG_LEVEL", defaults.log_level).upper(),
    )
