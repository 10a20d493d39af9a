"""Parsers for the hierarchy, flow and structured (JSON) diagram inputs."""
from __future__ import annotations

import json
import logging
import re
from typing import Dict, List, Optional, Tuple

from .model import AksaraDrawError, Diagram, Edge, Node, NodeMetadata, default_layout

LOGGER = logging.getLogger(__name__)

_HIERARCHY_LINE = re.compile(r"^(.+?)\s*>\s*\[(.+)\](?:\s*\((.+)\))?$")
_FLOW_LINE = re.compile(r"^(.+?)\s*->\s*(.+?)(?:\s*\[label:\s*(.+?)\])?$")
_DECISION = re.compile(r"^(.+?)\?$")
_HIERARCHY_ARROW = re.compile(r"(?<!-)>")

TYPE_HINTS = {
    "hierarchy": "hierarchy",
    "org": "hierarchy",
    "flow": "flow",
    "flowchart": "flow",
    "structured": "structured",
    "json": "structured",
}

_HORIZONTAL_TOKENS = {"h", "horizontal"}
_VERTICAL_TOKENS = {"v", "vertical"}
_DIRECTION_TOKENS = {"LR": "LR", "TB": "TB", "TD": "TB", "RL": "RL", "BT": "BT"}


class _NodeTable:
    """Per-call label -> id table; ids are ``n1``, ``n2``, ... in first-seen order."""

    def __init__(self) -> None:
        self.nodes: List[Node] = []
        self._ids: Dict[str, str] = {}
        self._by_id: Dict[str, Node] = {}

    def get_or_create(self, key: str, label: Optional[str] = None, shape: Optional[str] = None) -> str:
        node_id = self._ids.get(key)
        if node_id is not None:
            return node_id
        node_id = f"n{len(self.nodes) + 1}"
        node = Node(id=node_id, label=key if label is None else label, shape=shape)
        self._ids[key] = node_id
        self._by_id[node_id] = node
        self.nodes.append(node)
        return node_id

    def node(self, node_id: str) -> Node:
        return self._by_id[node_id]


def _content_lines(text: str) -> List[str]:
    return [line.strip() for line in text.strip().splitlines() if line.strip()]


def _parse_hierarchy_options(options: str, metadata: NodeMetadata) -> None:
    for token in re.split(r"[,\s]+", options.strip()):
        if not token:
            continue
        lowered = token.lower()
        if lowered in _HORIZONTAL_TOKENS:
            metadata.child_layout = "horizontal"
        elif lowered in _VERTICAL_TOKENS:
            metadata.child_layout = "vertical"
        elif token.upper() in _DIRECTION_TOKENS:
            metadata.child_direction = _DIRECTION_TOKENS[token.upper()]
        else:
            LOGGER.debug("ignoring unknown hierarchy option %r", token)


def parse_hierarchy(text: str) -> Diagram:
    """Parse ``Parent > [ChildA, ChildB] (options)`` lines into an org diagram."""
    table = _NodeTable()
    edges: List[Edge] = []

    for line in _content_lines(text):
        match = _HIERARCHY_LINE.match(line)
        if not match:
            table.get_or_create(line)
            continue
        parent_id = table.get_or_create(match.group(1).strip())
        options = match.group(3)
        if options:
            _parse_hierarchy_options(options, table.node(parent_id).metadata)
        for child in match.group(2).split(","):
            child = child.strip()
            if not child:
                continue
            child_id = table.get_or_create(child)
            edges.append(Edge(source=parent_id, target=child_id))

    return Diagram(type="org", nodes=table.nodes, edges=edges, layout=default_layout())


def _flow_node_key(name: str) -> Tuple[str, str, str]:
    name = name.strip()
    match = _DECISION.match(name)
    if match:
        return name, match.group(1).strip(), "diamond"
    return name, name, "rect"


def parse_flow(text: str) -> Diagram:
    """Parse ``A -> B [label: X]`` lines into a flowchart diagram.

    A name ending in ``?`` is a decision and renders as a diamond.
    """
    table = _NodeTable()
    edges: List[Edge] = []

    def _node(name: str) -> str:
        key, label, shape = _flow_node_key(name)
        return table.get_or_create(key, label=label, shape=shape)

    for line in _content_lines(text):
        match = _FLOW_LINE.match(line)
        if not match:
            _node(line)
            continue
        source_id = _node(match.group(1))
        target_id = _node(match.group(2))
        label = match.group(3)
        edges.append(
            Edge(source=source_id, target=target_id, label=label.strip() if label else None)
        )

    return Diagram(type="flowchart", nodes=table.nodes, edges=edges, layout=default_layout())


def parse_structured(text: str) -> Diagram:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise AksaraDrawError("E_PARSE_JSON", f"Invalid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise AksaraDrawError(
            "E_PARSE_STRUCTURE", f"structured input must be a JSON object (got {type(data).__name__})"
        )
    return Diagram.from_dict(data)


def detect_input_kind(text: str) -> str:
    stripped = text.strip()
    if stripped.startswith("{"):
        return "structured"
    if _HIERARCHY_ARROW.search(stripped):
        return "hierarchy"
    if "->" in stripped:
        return "flow"
    return "hierarchy"


def parse(text: str, type_hint: Optional[str] = None) -> Diagram:
    """Parse diagram text, auto-detecting the syntax unless ``type_hint`` is given."""
    if type_hint is not None:
        kind = TYPE_HINTS.get(type_hint.strip().lower())
        if kind is None:
            raise AksaraDrawError(
                "E_PARSE_HINT",
                f'unknown diagram type hint "{type_hint}" (expected hierarchy, flow or structured)',
            )
    else:
        kind = detect_input_kind(text)
    LOGGER.debug("parsing input as %s", kind)

    if kind == "structured":
        return parse_structured(text)
    if kind == "flow":
        return parse_flow(text)
    return parse_hierarchy(text)


__all__ = ["parse", "parse_hierarchy", "parse_flow", "parse_structured", "detect_input_kind"]
