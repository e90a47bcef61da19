"""Diagnostics support for the TAGO.io telemetry agent."""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING, Any, Iterable, Mapping

from .config import AgentConfig
from .const import CONF_PASSWORD, CONF_TOKEN
from .core.transport import describe_error

if TYPE_CHECKING:
    from . import AgentRuntime

TO_REDACT = {CONF_TOKEN, CONF_PASSWORD, "auth_token", "secret"}
REDACTED = "**REDACTED**"


def redact_data(data: Any, to_redact: Iterable[str] = TO_REDACT) -> Any:
    """Return a copy of ``data`` with sensitive keys masked."""
    keys = set(to_redact)
    if isinstance(data, Mapping):
        return {
            key: (REDACTED if key in keys and value else redact_data(value, keys))
            for key, value in data.items()
        }
    if isinstance(data, (list, tuple)):
        return [redact_data(item, keys) for item in data]
    return data


def get_config_diagnostics(config: AgentConfig) -> dict[str, Any]:
    return redact_data(asdict(config))


def get_agent_diagnostics(runtime: AgentRuntime) -> dict[str, Any]:
    """Return a redacted snapshot of a running agent."""
    error_code = runtime.session.last_error_code
    return {
        "config": get_config_diagnostics(runtime.config),
        "link": {
            "state": runtime.link.state.value,
            "address": runtime.link.local_address,
            "connect_attempts": runtime.link.connect_attempts,
        },
        "session": {
            "state": runtime.session.state.value,
            "connect_attempts": runtime.session.connect_attempts,
            "last_error_code": error_code,
            "last_error": describe_error(error_code),
        },
        "schedule": {
            "interval_ms": runtime.scheduler.schedule.interval,
            "last_fire_ms": runtime.scheduler.schedule.last_fire,
            "cycles": runtime.scheduler.cycles,
            "published": runtime.scheduler.published,
            "targets": list(runtime.scheduler.targets),
        },
        "restarts": runtime.restarts,
    }
