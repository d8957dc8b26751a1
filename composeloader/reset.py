"""Handling of the `!reset` and `!override` YAML tags."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import yaml
from yaml.nodes import MappingNode, Node, ScalarNode, SequenceNode
from yaml.resolver import Resolver

RESET_TAG = "!reset"
OVERRIDE_TAG = "!override"

_MERGE_SEGMENT = ".<<"
_COLLECTION_TAGS = {
    MappingNode: "tag:yaml.org,2002:map",
    SequenceNode: "tag:yaml.org,2002:seq",
}
_RESOLVER = Resolver()


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def path_matches(path: str, pattern: str) -> bool:
    """Tell whether a dotted path matches a pattern where `*` matches any segment."""
    parts = path.split(".")
    pattern_parts = pattern.split(".")
    if len(parts) != len(pattern_parts):
        return False
    return all(expected in ("*", actual) for actual, expected in zip(parts, pattern_parts))


def _drop_custom_tag(node: Node) -> None:
    if isinstance(node, ScalarNode):
        node.tag = _RESOLVER.resolve(ScalarNode, node.value, (node.style is None, False))
    else:
        node.tag = _COLLECTION_TAGS[type(node)]


@dataclass
class ResetProcessor:
    """Records the paths tagged `!reset` or `!override` in a YAML document."""

    paths: list[str] = field(default_factory=list)

    def resolve_node(self, node: Node, path: str = "") -> Optional[Node]:
        """Strip reset nodes from the tree, recording where tagged nodes were found."""
        if _MERGE_SEGMENT in path:
            path = path.replace(_MERGE_SEGMENT, "", 1)

        if node.tag == RESET_TAG:
            self.paths.append(path)
            return None
        if node.tag == OVERRIDE_TAG:
            self.paths.append(path)
            _drop_custom_tag(node)
            return node

        if isinstance(node, SequenceNode):
            node.value = [
                resolved
                for index, item in enumerate(node.value)
                if (resolved := self.resolve_node(item, _join(path, str(index)))) is not None
            ]
        elif isinstance(node, MappingNode):
            kept = []
            for key_node, value_node in node.value:
                key = key_node.value if isinstance(key_node, ScalarNode) else ""
                resolved = self.resolve_node(value_node, _join(path, key))
                if resolved is not None:
                    kept.append((key_node, resolved))
            node.value = kept
        return node

    def apply(self, target: Any) -> None:
        """Remove from `target` the mapping entries at recorded paths."""
        self._apply(target, "")

    def _matches(self, path: str) -> bool:
        return any(path_matches(path, pattern) for pattern in self.paths)

    def _apply(self, target: Any, path: str) -> None:
        if isinstance(target, dict):
            for key in list(target):
                next_path = _join(path, str(key))
                if self._matches(next_path):
                    del target[key]
                    continue
                self._apply(target[key], next_path)
        elif isinstance(target, list):
            for index, item in enumerate(target):
                next_path = _join(path, f"[{index}]")
                if self._matches(next_path):
                    continue
                self._apply(item, next_path)


def parse_documents(source: Union[str, bytes]) -> Iterator[tuple[Any, ResetProcessor]]:
    """Yield each YAML document with the processor that recorded its tagged paths."""
    loader = yaml.SafeLoader(source)
    try:
        while loader.check_node():
            node = loader.get_node()
            processor = ResetProcessor()
            resolved = processor.resolve_node(node, "")
            document = None if resolved is None else loader.construct_document(resolved)
            yield document, processor
    finally:
        loader.dispose()