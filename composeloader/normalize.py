"""Normalization of a compose model: canonical positions and implicit defaults."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Optional

PULL_POLICY_IF_NOT_PRESENT = "if_not_present"
PULL_POLICY_MISSING = "missing"
SERVICE_CONDITION_STARTED = "service_started"
SERVICE_PREFIX = "service:"
CONTAINER_PREFIX = "container:"

_SHARED_NAMESPACES = ("network_mode", "ipc", "pid", "uts", "cgroup")
_NAMED_RESOURCES = ("networks", "volumes", "configs", "secrets")
_TRUE_STRINGS = frozenset({"1", "t", "T", "TRUE", "true", "True"})

Lookup = Callable[[str], Optional[str]]


def _implicit_dependency(restart: bool) -> dict[str, Any]:
    return {
        "condition": SERVICE_CONDITION_STARTED,
        "restart": restart,
        "required": True,
    }


def normalize(model: dict[str, Any], env: Mapping[str, str] | None) -> dict[str, Any]:
    """Move deprecated attributes to their canonical place and inject implicit defaults."""
    env = env or {}
    lookup: Lookup = env.get

    normalize_networks(model)

    if "services" in model:
        services = model["services"]
        for name, service in services.items():
            if service is None:
                service = {}

            if service.get("pull_policy") == PULL_POLICY_IF_NOT_PRESENT:
                service["pull_policy"] = PULL_POLICY_MISSING

            if "build" in service:
                build = service["build"]
                if build is None:
                    build = {}
                if build.get("context") is None:
                    build["context"] = "."
                if build.get("dockerfile") is None and build.get("dockerfile_inline") is None:
                    build["dockerfile"] = "Dockerfile"
                if "args" in build:
                    build["args"], _ = resolve(build["args"], lookup, False)
                service["build"] = build

            if "environment" in service:
                service["environment"], _ = resolve(service["environment"], lookup, True)

            depends_on = service.get("depends_on")
            if depends_on is None:
                depends_on = {}

            for link in service.get("links") or []:
                parts = link.split(":")
                if len(parts) == 2:
                    link = parts[0]
                depends_on.setdefault(link, _implicit_dependency(True))

            for namespace in _SHARED_NAMESPACES:
                ref = service.get(namespace)
                if ref is not None and ref.startswith(SERVICE_PREFIX):
                    shared = ref[len(SERVICE_PREFIX):]
                    depends_on.setdefault(shared, _implicit_dependency(True))

            for volume in service.get("volumes_from") or []:
                if not volume.startswith(CONTAINER_PREFIX):
                    source = volume.split(":")[0]
                    depends_on.setdefault(source, _implicit_dependency(False))

            if depends_on:
                service["depends_on"] = depends_on
            services[name] = service
        model["services"] = services

    set_name_from_key(model)
    return model


def normalize_networks(model: dict[str, Any]) -> None:
    """Attach services to the implicit `default` network and declare it when used."""
    networks = model.get("networks")
    if networks is None:
        networks = {}

    uses_default_network = False

    if "services" in model:
        services = model["services"]
        for name, service in services.items():
            if service is None:
                service = {}
            if "network_mode" in service:
                services[name] = service
                continue
            service_networks = service.get("networks")
            if "networks" not in service or not service_networks:
                service["networks"] = {"default": None}
                uses_default_network = True
            elif "default" in service_networks:
                uses_default_network = True
            services[name] = service
        model["services"] = services

    if uses_default_network and "default" not in networks:
        networks["default"] = None

    if networks:
        model["networks"] = networks


def resolve(value: Any, lookup: Lookup, keep_empty: bool) -> tuple[Any, bool]:
    """Fill unset entries from `lookup`; return the result and whether to keep it."""
    if isinstance(value, list):
        resolved_items = []
        for item in value:
            resolved, keep = resolve(item, lookup, keep_empty)
            if keep:
                resolved_items.append(resolved)
        return resolved_items, True
    if isinstance(value, dict):
        resolved_map: dict[str, Any] = {}
        for key, entry in value.items():
            if entry is not None:
                resolved_map[key] = entry
                continue
            found = lookup(key)
            if found is not None:
                resolved_map[key] = found
            elif keep_empty:
                resolved_map[key] = None
        return resolved_map, True
    if isinstance(value, str):
        if "=" in value:
            return value, True
        found = lookup(value)
        if found is not None:
            return f"{value}={found}", True
        if keep_empty:
            return value, True
        return "", False
    return value, False


def set_name_from_key(model: dict[str, Any]) -> None:
    """Name resources without an explicit name after their key."""
    for kind in _NAMED_RESOURCES:
        if kind not in model:
            continue
        toplevel = model[kind]
        for key, resource in toplevel.items():
            if resource is None:
                resource = {}
            if resource.get("name") is None:
                if "external" in resource and is_true(resource["external"]):
                    resource["name"] = key
                else:
                    resource["name"] = f"{model.get('name')}_{key}"
            toplevel[key] = resource


def is_true(value: Any) -> bool:
    """Interpret a value as a boolean the way the compose format spells `true`."""
    if isinstance(value, bool):
        return value
    return str(value) in _TRUE_STRINGS