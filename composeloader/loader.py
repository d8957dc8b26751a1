"""Loader options, YAML parsing and project naming for compose files."""

from __future__ import annotations

import contextlib
import json
import logging
import ntpath
import os
import re
from collections.abc import Callable, Iterable, MutableMapping
from dataclasses import dataclass, field
from typing import Any, Optional, Protocol, Union

import yaml
from yaml.nodes import MappingNode, Node, ScalarNode

from .reset import parse_documents, path_matches

COMPOSE_PROJECT_NAME = "COMPOSE_PROJECT_NAME"
EXTENSIONS_KEY = "#extensions"

_USER_DEFINED_KEYS = ("services", "volumes", "networks", "secrets", "configs")
_PROJECT_NAME_CHAR = re.compile("[a-z0-9_-]")
_NULL_TAG = "tag:yaml.org,2002:null"

_log = logging.getLogger(__name__)

Listener = Callable[[str, dict], None]


class LoaderError(Exception):
    """Raised when a compose model cannot be loaded."""


class _ResourceLoader(Protocol):
    def accept(self, path: str) -> bool: ...

    def load(self, path: str) -> str: ...

    def dir(self, path: str) -> str: ...


@dataclass
class LocalResourceLoader:
    """Resolves resources found on the local file system."""

    working_dir: str

    def _abs(self, path: str) -> str:
        if os.path.isabs(path):
            return path
        return os.path.normpath(os.path.join(self.working_dir, path))

    def accept(self, path: str) -> bool:
        """Tell whether the path exists locally."""
        return os.path.exists(self._abs(path))

    def load(self, path: str) -> str:
        """Return the absolute local path of the resource."""
        return self._abs(path)

    def dir(self, original_path: str) -> str:
        """Return the resource's folder, relative to the working directory if possible."""
        path = self._abs(original_path)
        if not os.path.isdir(path):
            path = self._abs(os.path.dirname(original_path) or ".")
        try:
            return os.path.relpath(path, self.working_dir)
        except ValueError:
            return path


@dataclass
class Options:
    """Settings that control how a compose model is loaded."""

    skip_validation: bool = False
    skip_interpolation: bool = False
    skip_normalization: bool = False
    resolve_paths: bool = False
    convert_windows_paths: bool = False
    skip_consistency_check: bool = False
    skip_extends: bool = False
    skip_include: bool = False
    skip_resolve_environment: bool = False
    skip_default_values: bool = False
    discard_env_files: bool = False
    interpolate: Optional[Callable[[dict[str, Any]], dict[str, Any]]] = None
    project_name: str = ""
    project_name_imperatively_set: bool = False
    profiles: list[str] = field(default_factory=list)
    resource_loaders: list[Any] = field(default_factory=list)
    known_extensions: dict[str, Any] = field(default_factory=dict)
    listeners: list[Listener] = field(default_factory=list)

    def set_project_name(self, name: str, imperatively_set: bool) -> None:
        """Set the project name and whether the caller chose it explicitly."""
        self.project_name = name
        self.project_name_imperatively_set = imperatively_set

    def process_event(self, event: str, metadata: dict) -> None:
        """Pass an event to every listener."""
        for listener in self.listeners:
            listener(event, metadata)

    def remote_resource_loaders(self) -> list[_ResourceLoader]:
        """Return the resource loaders other than the local one."""
        loaders = []
        last = len(self.resource_loaders) - 1
        for index, loader in enumerate(self.resource_loaders):
            if isinstance(loader, LocalResourceLoader):
                if index != last:
                    _log.warning(
                        "misconfiguration of ResourceLoaders: localResourceLoader should be last"
                    )
                continue
            loaders.append(loader)
        return loaders


@dataclass(frozen=True)
class CycleTracker:
    """Chain of services followed through `extends`, used to detect cycles."""

    loaded: tuple[tuple[str, str], ...] = ()

    def add(self, filename: str, service: str) -> CycleTracker:
        """Return a tracker extended with the service, or raise on a circular reference."""
        entry = (filename, service)
        if entry in self.loaded:
            first_file, first_service = self.loaded[0]
            lines = ["Circular reference:", f"  {first_service} in {first_file}"]
            lines.extend(
                f"  extends {name} in {file}" for file, name in (*self.loaded[1:], entry)
            )
            raise LoaderError("\n".join(lines))
        return CycleTracker(self.loaded + (entry,))


def _go_literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "<nil>"
    return repr(value)


def _child_prefix(prefix: str, key: str) -> str:
    return f"{prefix}.{key}" if prefix else key


def convert_to_string_keys(value: Any, key_prefix: str = "") -> Any:
    """Copy a parsed YAML value, failing on any mapping key that is not a string."""
    if isinstance(value, dict):
        converted = {}
        for key, entry in value.items():
            if not isinstance(key, str):
                location = f"in {key_prefix}" if key_prefix else "at top level"
                raise LoaderError(f"Non-string key {location}: {_go_literal(key)}")
            converted[key] = convert_to_string_keys(entry, _child_prefix(key_prefix, key))
        return converted
    if isinstance(value, list):
        return [
            convert_to_string_keys(entry, f"{key_prefix}[{index}]")
            for index, entry in enumerate(value)
        ]
    return value


def parse_yaml(source: Union[str, bytes]) -> dict[str, Any]:
    """Parse the first YAML document of `source` into a mapping with string keys."""
    with contextlib.closing(parse_documents(source)) as documents:
        first = next(documents, None)
    if first is None:
        raise LoaderError("no YAML document found")
    document, _ = first
    if not isinstance(document, dict):
        raise LoaderError("Top-level object must be a mapping")
    return convert_to_string_keys(document, "")


def normalize_project_name(name: str) -> str:
    """Lower-case the name and keep only the characters a project name allows."""
    kept = "".join(_PROJECT_NAME_CHAR.findall(name.lower()))
    return kept.lstrip("_-")


def invalid_project_name_error(name: str) -> LoaderError:
    """Build the error reported for a project name that is not valid."""
    return LoaderError(
        f"invalid project name {json.dumps(name, ensure_ascii=False)}: must consist only of "
        "lowercase alphanumeric characters, hyphens, and underscores as well as start with "
        "a letter or number"
    )


class _Undecodable(Exception):
    pass


def _declared_name(node: Optional[Node]) -> str:
    if node is None:
        return ""
    if not isinstance(node, MappingNode):
        raise _Undecodable
    name = ""
    for key_node, value_node in node.value:
        if isinstance(key_node, ScalarNode) and key_node.value == "name":
            if not isinstance(value_node, ScalarNode):
                raise _Undecodable
            name = "" if value_node.tag == _NULL_TAG else value_node.value
    return name


def resolve_project_name(
    options: Options,
    contents: Iterable[Union[str, bytes]],
    environment: Optional[MutableMapping[str, str]] = None,
) -> str:
    """Settle the project name from the options or the `name` of the files' contents.

    The chosen name is stored in `options` and, when given, in `environment`
    under COMPOSE_PROJECT_NAME.
    """
    try:
        if options.project_name_imperatively_set:
            if normalize_project_name(options.project_name) != options.project_name:
                raise invalid_project_name_error(options.project_name)
            return options.project_name

        from_files = ""
        for content in contents:
            try:
                for node in yaml.compose_all(content, Loader=yaml.SafeLoader):
                    name = _declared_name(node)
                    if name:
                        from_files = name
            except (yaml.YAMLError, _Undecodable):
                continue

        if not options.skip_interpolation and options.interpolate is not None:
            from_files = options.interpolate({"name": from_files})["name"]

        from_files = normalize_project_name(from_files)
        if from_files:
            options.project_name = from_files
        return options.project_name
    finally:
        if environment is not None:
            environment[COMPOSE_PROJECT_NAME] = options.project_name


def process_extensions(model: dict[str, Any], path: str = "") -> dict[str, Any]:
    """Move `x-*` attributes of every mapping under its EXTENSIONS_KEY entry."""
    extras: dict[str, Any] = {}
    user_defined = any(path_matches(path, key) for key in _USER_DEFINED_KEYS)
    for key, value in list(model.items()):
        if not user_defined and key.startswith("x-"):
            extras[key] = value
            del model[key]
            continue
        if isinstance(value, dict):
            model[key] = process_extensions(value, _child_prefix(path, key))
        elif isinstance(value, list):
            for index, item in enumerate(value):
                if isinstance(item, dict):
                    value[index] = process_extensions(
                        item, _child_prefix(_child_prefix(path, key), str(index))
                    )
    if extras:
        model[EXTENSIONS_KEY] = extras
    return model


def convert_volume_path(source: str) -> str:
    """Turn a Windows drive path such as `c:\\data` into the `/c/data` form."""
    drive, rest = ntpath.splitdrive(source)
    if len(drive) != 2:
        return source
    return f"/{drive[0].lower()}{rest}".replace("\\", "/")