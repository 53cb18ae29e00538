"""Configuration classes for the FFMS SDK."""

from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional

from ffms.errors import ConfigurationError
from ffms.retry import ReconnectPolicy

REQUIRED_OPTIONS = ("base_url", "api_key", "project_id", "toggle_id")

# Option names accepted by from_options(), mapped to FFMSConfig fields
OPTION_ALIASES = {
    "baseUrl": "base_url",
    "apiKey": "api_key",
    "projectId": "project_id",
    "toggleId": "toggle_id",
    "reconnect": "reconnect",
    "timeout": "timeout_ms",
    "timeoutMs": "timeout_ms",
    "reconnectDelay": "reconnect_delay_ms",
    "reconnectDelayMs": "reconnect_delay_ms",
    "maxReconnectAttempts": "max_reconnect_attempts",
}


@dataclass
class FFMSConfig:
    """Configuration for the FFMS client."""

    base_url: str
    """Base URL of the FFMS API, e.g. ``https://ffms.example.com/api``."""

    api_key: str
    """API key sent as a bearer token."""

    project_id: str
    """Project whose flags are fetched."""

    toggle_id: str
    """Flag-set identifier checked during validation."""

    reconnect: bool = True
    """Re-open the live channel after it closes (default: True)."""

    timeout_ms: int = 5000
    """Request timeout in milliseconds for validate and initialize."""

    reconnect_policy: ReconnectPolicy = field(default_factory=ReconnectPolicy)
    """Delay policy for live channel reconnects."""

    def __post_init__(self):
        missing = [
            name
            for name in REQUIRED_OPTIONS
            if not isinstance(getattr(self, name), str) or not getattr(self, name)
        ]
        if missing:
            raise ConfigurationError(
                f"{', '.join(missing)} {'is' if len(missing) == 1 else 'are'} required."
            )

        if self.timeout_ms <= 0:
            raise ConfigurationError("timeout_ms must be positive.")

        self.base_url = self.base_url.rstrip("/")
        self.reconnect = bool(self.reconnect)

    @property
    def timeout(self) -> float:
        """Request timeout in seconds."""
        return self.timeout_ms / 1000

    @classmethod
    def from_options(cls, options: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> "FFMSConfig":
        """
        Build a config from an option mapping.

        Accepts both the camelCase names used by the other FFMS SDKs
        (``baseUrl``, ``apiKey``, ``projectId``, ``toggleId``) and the
        snake_case field names.

        Raises:
            ConfigurationError: If a required option is missing or an option is unknown
        """
        merged = dict(options or {})
        merged.update(kwargs)

        values = {}
        for key, value in merged.items():
            name = OPTION_ALIASES.get(key, key)
            values[name] = value

        policy = values.pop("reconnect_policy", None) or ReconnectPolicy()
        delay = values.pop("reconnect_delay_ms", None)
        max_attempts = values.pop("max_reconnect_attempts", None)
        if delay is not None:
            policy = replace(policy, delay_ms=int(delay))
        if max_attempts is not None:
            policy = replace(policy, max_attempts=int(max_attempts))

        known = set(REQUIRED_OPTIONS) | {"reconnect", "timeout_ms"}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ConfigurationError(f"Unknown option(s): {', '.join(unknown)}")

        for name in REQUIRED_OPTIONS:
            values.setdefault(name, None)

        return cls(reconnect_policy=policy, **values)
