from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class APIVersion:
    major: int
    minor: int

    @property
    def label(self) -> str:
        return f"{self.major}.{self.minor}"

    def at_least(self, other: "APIVersion") -> bool:
        return (self.major, self.minor) >= (other.major, other.minor)


API_VERSION_2_11 = APIVersion(2, 11)
API_VERSION_2_12 = APIVersion(2, 12)
API_VERSION_2_13 = APIVersion(2, 13)
API_VERSION_2_14 = APIVersion(2, 14)

KNOWN_API_VERSIONS = (API_VERSION_2_11, API_VERSION_2_12, API_VERSION_2_13, API_VERSION_2_14)
LATEST_API_VERSION = API_VERSION_2_14

# Originating identity headers were added in 2.13, async bindings and GET binding in 2.14.
ORIGINATING_IDENTITY_MIN_VERSION = API_VERSION_2_13
ASYNC_BINDINGS_MIN_VERSION = API_VERSION_2_14

DEFAULT_BROKER_NAME = "osb-client"
DEFAULT_TIMEOUT_SECONDS = 60


def parse_api_version(raw: str) -> APIVersion:
    s = (raw or "").strip()
    for v in KNOWN_API_VERSIONS:
        if v.label == s:
            return v
    raise ValueError(f"unsupported broker API version: {raw!r}")


@dataclass(frozen=True)
class ClientConfiguration:
    """Connection settings for one broker. Read-only after construction."""

    url: str
    name: str = DEFAULT_BROKER_NAME
    api_version: APIVersion = LATEST_API_VERSION
    timeout_s: int = DEFAULT_TIMEOUT_SECONDS
    username: Optional[str] = None
    password: Optional[str] = None
    bearer_token: Optional[str] = None
    insecure: bool = False
    ca_file: Optional[str] = None
    enable_alpha_features: bool = False
    verbose: bool = False

    def __post_init__(self) -> None:
        if not (self.url or "").strip():
            raise ValueError("url is required")
        object.__setattr__(self, "url", self.url.strip().rstrip("/"))
        if self.timeout_s <= 0:
            raise ValueError("timeout_s must be > 0")
        if self.bearer_token and (self.username or self.password):
            raise ValueError("basic auth and bearer token are mutually exclusive")
        if (self.username is None) != (self.password is None):
            raise ValueError("username and password must be set together")
        if self.insecure and self.ca_file:
            raise ValueError("insecure and ca_file are mutually exclusive")


def _env_bool(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


def _env_str(name: str) -> Optional[str]:
    return (os.getenv(name) or "").strip() or None


def configuration_from_env() -> ClientConfiguration:
    """Build a ClientConfiguration from OSB_* environment variables."""
    timeout_raw = (os.getenv("OSB_TIMEOUT_SECONDS") or "").strip()
    return ClientConfiguration(
        url=os.getenv("OSB_BROKER_URL", ""),
        name=_env_str("OSB_BROKER_NAME") or DEFAULT_BROKER_NAME,
        api_version=parse_api_version(_env_str("OSB_API_VERSION") or LATEST_API_VERSION.label),
        timeout_s=int(timeout_raw) if timeout_raw else DEFAULT_TIMEOUT_SECONDS,
        username=_env_str("OSB_USERNAME"),
        password=_env_str("OSB_PASSWORD"),
        bearer_token=_env_str("OSB_BEARER_TOKEN"),
        insecure=_env_bool("OSB_INSECURE"),
        ca_file=_env_str("OSB_CA_FILE"),
        enable_alpha_features=_env_bool("OSB_ENABLE_ALPHA_FEATURES"),
        verbose=_env_bool("OSB_VERBOSE"),
    )
