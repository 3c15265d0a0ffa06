"""Engine settings, with an optional YAML file on top of code defaults."""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml

from formroute.errors import SerializationError
from formroute.forwarding import DEFAULT_ROUTED_HOSTS_PARAM, DEFAULT_ROUTING_CONTROL_PARAMS
from formroute.routes import DEFAULT_FALLBACK_MESSAGE


@dataclass(frozen=True)
class EngineConfig:
    """
    Properties:
        routed_hosts_param:
            Forwarded key carrying the comma-joined matched host ids
        routing_control_params:
            Incoming URL parameters that belong to the router and are not forwarded
        require_eligible_host:
            Raise NoEligibleHostError when attribute routing matches nobody
        fallback_message:
            Message of fallback routes created for tables that lack one
    """

    routed_hosts_param: str = DEFAULT_ROUTED_HOSTS_PARAM
    routing_control_params: Tuple[str, ...] = DEFAULT_ROUTING_CONTROL_PARAMS
    require_eligible_host: bool = True
    fallback_message: str = DEFAULT_FALLBACK_MESSAGE


def config_from_dict(d: Optional[Dict[str, Any]]) -> EngineConfig:
    if not d:
        return EngineConfig()
    if not isinstance(d, dict):
        raise SerializationError("Engine config must be a mapping")
    known = {f.name for f in fields(EngineConfig)}
    unknown = set(d) - known
    if unknown:
        raise SerializationError(f"Unknown config keys: {', '.join(sorted(unknown))}")
    values = dict(d)
    if "routing_control_params" in values:
        values["routing_control_params"] = tuple(values["routing_control_params"])
    return EngineConfig(**values)


def load_config(path: Union[str, Path, None]) -> EngineConfig:
    """Read an EngineConfig from YAML; a missing file yields the defaults."""
    if path is None:
        return EngineConfig()
    path = Path(path)
    if not path.is_file():
        return EngineConfig()
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise SerializationError(f"Invalid YAML in {path}: {exc}") from exc
    return config_from_dict(data)
