from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_BRIDGE_PORT = 9333
DEFAULT_CDP_PORT = 9222
MAX_BODY_BYTES = 1_048_576

LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1", "[::1]"})


def _env_int(name: str, default: int, *, low: int, high: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        return default
    return max(low, min(value, high))


def _env_float(name: str, default: float, *, low: float, high: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw.strip())
    except ValueError:
        return default
    if value != value:  # NaN
        return default
    return max(low, min(value, high))


@dataclass
class LensConfig:
    bridge_host: str = "127.0.0.1"
    bridge_port: int = DEFAULT_BRIDGE_PORT
    cdp_host: str = "127.0.0.1"
    cdp_port: int = DEFAULT_CDP_PORT
    target_url: str = ""
    max_body_bytes: int = MAX_BODY_BYTES
    operation_timeout_ms: int = 10_000
    navigation_timeout_ms: int = 30_000
    wait_for_timeout_ms: int = 5_000
    connect_attempts: int = 3
    connect_retry_delay: float = 0.5
    operation_retries: int = 2
    retry_delay: float = 0.3
    console_capacity: int = 500
    allow_hosts: list[str] = field(default_factory=list)
    client_timeout: float = 60.0

    @property
    def bridge_url(self) -> str:
        return f"http://{self.bridge_host}:{self.bridge_port}"

    @property
    def cdp_url(self) -> str:
        return f"http://{self.cdp_host}:{self.cdp_port}"

    @classmethod
    def from_env(cls) -> LensConfig:
        allow_raw = os.environ.get("LENS_ALLOW_HOSTS", "")
        allow_hosts = [host.strip().lower() for host in allow_raw.split(",") if host.strip()]
        return cls(
            bridge_host=(os.environ.get("LENS_BRIDGE_HOST") or "127.0.0.1").strip(),
            bridge_port=_env_int("LENS_BRIDGE_PORT", DEFAULT_BRIDGE_PORT, low=0, high=65535),
            cdp_host=(os.environ.get("LENS_CDP_HOST") or "127.0.0.1").strip(),
            cdp_port=_env_int("LENS_CDP_PORT", DEFAULT_CDP_PORT, low=1, high=65535),
            target_url=(os.environ.get("LENS_TARGET_URL") or "").strip(),
            max_body_bytes=_env_int("LENS_MAX_BODY_BYTES", MAX_BODY_BYTES, low=1024, high=64 * MAX_BODY_BYTES),
            operation_timeout_ms=_env_int("LENS_OPERATION_TIMEOUT_MS", 10_000, low=100, high=600_000),
            navigation_timeout_ms=_env_int("LENS_NAVIGATION_TIMEOUT_MS", 30_000, low=100, high=600_000),
            wait_for_timeout_ms=_env_int("LENS_WAIT_FOR_TIMEOUT_MS", 5_000, low=100, high=600_000),
            connect_attempts=_env_int("LENS_CONNECT_ATTEMPTS", 3, low=1, high=20),
            connect_retry_delay=_env_float("LENS_CONNECT_RETRY_DELAY", 0.5, low=0.0, high=10.0),
            operation_retries=_env_int("LENS_OPERATION_RETRIES", 2, low=0, high=10),
            retry_delay=_env_float("LENS_RETRY_DELAY", 0.3, low=0.0, high=10.0),
            console_capacity=_env_int("LENS_CONSOLE_CAPACITY", 500, low=1, high=100_000),
            allow_hosts=allow_hosts,
            client_timeout=_env_float("LENS_CLIENT_TIMEOUT", 60.0, low=1.0, high=3600.0),
        )

    def is_host_allowed(self, host: str) -> bool:
        """Navigation allow-list. Empty list means loopback only; `*` allows everything."""
        host = (host or "").strip().lower().rstrip(".")
        if host in LOOPBACK_HOSTS:
            return True
        for raw_allowed in self.allow_hosts:
            allowed = (raw_allowed or "").strip().lower().lstrip(".").rstrip(".")
            if not allowed:
                continue
            if allowed == "*":
                return True
            if host == allowed:
                return True
            if host.endswith("." + allowed):
                return True
        return False
