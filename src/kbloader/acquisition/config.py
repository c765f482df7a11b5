"""Runtime options for URL acquisition."""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Mapping

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_RETRIES = 2
DEFAULT_MIN_CONTENT_LENGTH = 50
DEFAULT_RETRY_BASE_SECONDS = 1.0
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
CHUNKING_STRATEGIES = frozenset({"semantic", "fixed"})


def _parse_int(*, name: str, raw_value: str, minimum: int) -> int:
    value = int(raw_value)
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def _parse_float(*, name: str, raw_value: str, minimum: float) -> float:
    value = float(raw_value)
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def _parse_hosts(raw_value: str) -> tuple[str, ...] | None:
    hosts = tuple(part.strip().lower() for part in raw_value.split(",") if part.strip())
    return hosts or None


@dataclass(frozen=True, slots=True)
class UrlLoadOptions:
    """Validated options for a single ``load_from_url`` call."""

    timeout: float = DEFAULT_TIMEOUT_SECONDS
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_base_seconds: float = DEFAULT_RETRY_BASE_SECONDS
    extract_content: bool = True
    extract_links: bool = False
    extract_meta: bool = True
    min_content_length: int = DEFAULT_MIN_CONTENT_LENGTH
    user_agent: str = DEFAULT_USER_AGENT
    allowed_hosts: tuple[str, ...] | None = None
    chunking_strategy: str = "semantic"
    use_reader_proxy: bool = True

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        if self.retry_base_seconds < 0:
            raise ValueError("retry_base_seconds cannot be negative")
        if self.min_content_length < 0:
            raise ValueError("min_content_length cannot be negative")
        if not self.user_agent.strip():
            raise ValueError("user_agent cannot be empty")
        if self.chunking_strategy not in CHUNKING_STRATEGIES:
            raise ValueError(f"chunking_strategy must be one of: {', '.join(sorted(CHUNKING_STRATEGIES))}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "UrlLoadOptions":
        source: Mapping[str, str] = os.environ if environ is None else environ

        timeout_raw = source.get("KBLOADER_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS)).strip()
        retries_raw = source.get("KBLOADER_MAX_RETRIES", str(DEFAULT_MAX_RETRIES)).strip()
        min_length_raw = source.get("KBLOADER_MIN_CONTENT_LENGTH", str(DEFAULT_MIN_CONTENT_LENGTH)).strip()
        user_agent = source.get("KBLOADER_USER_AGENT", DEFAULT_USER_AGENT).strip()
        strategy = source.get("KBLOADER_CHUNKING_STRATEGY", "semantic").strip().lower()

        if not timeout_raw:
            raise ValueError("KBLOADER_TIMEOUT_SECONDS cannot be empty")
        if not retries_raw:
            raise ValueError("KBLOADER_MAX_RETRIES cannot be empty")
        if not min_length_raw:
            raise ValueError("KBLOADER_MIN_CONTENT_LENGTH cannot be empty")
        if not user_agent:
            raise ValueError("KBLOADER_USER_AGENT cannot be empty")
        if strategy not in CHUNKING_STRATEGIES:
            raise ValueError("KBLOADER_CHUNKING_STRATEGY must be 'semantic' or 'fixed'")

        return cls(
            timeout=_parse_float(name="KBLOADER_TIMEOUT_SECONDS", raw_value=timeout_raw, minimum=0.1),
            max_retries=_parse_int(name="KBLOADER_MAX_RETRIES", raw_value=retries_raw, minimum=0),
            min_content_length=_parse_int(name="KBLOADER_MIN_CONTENT_LENGTH", raw_value=min_length_raw, minimum=0),
            user_agent=user_agent,
            allowed_hosts=_parse_hosts(source.get("KBLOADER_ALLOWED_HOSTS", "")),
            chunking_strategy=strategy,
        )
