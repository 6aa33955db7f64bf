"""Writing scheduling decisions into Clout capability and relationship values."""

from __future__ import annotations

from typing import Any


def _get_map(value: Any, *keys: str) -> dict | None:
    for key in keys:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value if isinstance(value, dict) else None


def schedule_host(capability: Any, host: str) -> bool:
    """Set the capability's host attribute; return True if it changed."""
    host_attribute = _get_map(capability, "attributes", "host")
    if host_attribute is None:
        return False
    if "$value" in host_attribute and host_attribute["$value"] == host:
        return False
    host_attribute["$value"] = host
    return True


def schedule_ip_port(relationship: Any, ip: str, port: int) -> bool:
    """Set the relationship's ip and port attributes; return True if both were set."""
    ip_attribute = _get_map(relationship, "attributes", "ip")
    if ip_attribute is None:
        return False
    ip_attribute["$value"] = ip

    port_attribute = _get_map(relationship, "attributes", "port")
    if port_attribute is None:
        return False
    port_attribute["$value"] = port
    return True