"""Consistency checks for extraction results and graphs."""

from __future__ import annotations

import warnings
from typing import Iterable

from garfield.types import Edge, ExtractionResult, GraphData, Node


class ValidationError(Exception):
    """Base class for graph validation failures."""


class DuplicateNodeIdError(ValidationError):
    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Duplicate node ID: {node_id}")


class UnknownNodeReferenceError(ValidationError):
    def __init__(self, edge: str, node: str) -> None:
        self.edge = edge
        self.node = node
        super().__init__(f"Edge '{edge}' references unknown node: {node}")


class EmptyNodeIdError(ValidationError):
    def __init__(self) -> None:
        super().__init__("Node has empty ID")


class EmptyLabelError(ValidationError):
    def __init__(self) -> None:
        super().__init__("Node has empty label")


class InvalidConfidenceError(ValidationError):
    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(
            f"Invalid confidence value: {value}. Expected EXTRACTED, INFERRED, or AMBIGUOUS"
        )


def _check(nodes: list[Node], links: Iterable[Edge]) -> None:
    for node in nodes:
        if not node.id:
            raise EmptyNodeIdError()
        if not node.label:
            raise EmptyLabelError()

    known: set[str] = set()
    for node in nodes:
        if node.id in known:
            raise DuplicateNodeIdError(node.id)
        known.add(node.id)

    for edge in links:
        for end in (edge.source, edge.target):
            if end not in known:
                raise UnknownNodeReferenceError(f"{edge.source} -> {edge.target}", end)


def validate_extraction(extraction: ExtractionResult) -> None:
    """Raise a ValidationError if the extraction is inconsistent."""
    _check(extraction.nodes, extraction.links)


def validate_graph(graph: GraphData) -> None:
    """Raise a ValidationError if the graph is inconsistent; warn on stale metadata."""
    _check(graph.nodes, graph.links)

    if graph.metadata.total_nodes != len(graph.nodes):
        warnings.warn(
            f"metadata.total_nodes ({graph.metadata.total_nodes}) "
            f"!= nodes.len() ({len(graph.nodes)})",
            RuntimeWarning,
            stacklevel=2,
        )
    if graph.metadata.total_edges != len(graph.links):
        warnings.warn(
            f"metadata.total_edges ({graph.metadata.total_edges}) "
            f"!= edges.len() ({len(graph.links)})",
            RuntimeWarning,
            stacklevel=2,
        )


def format_error(err: ValidationError) -> str:
    """Human-readable description of a validation error."""
    return str(err)