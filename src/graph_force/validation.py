"""
Input validation utilities for the force simulation.

Provides centralized validation functions for node ids, links, dimensions
and numeric parameters. Raises descriptive exceptions on invalid input.
Expected runtime conditions (unknown id on lookup) never raise; only
programmer errors do.
"""

from __future__ import annotations

from typing import Any, Hashable, Mapping, Sequence


class ValidationError(ValueError):
    """Base exception for simulation validation errors."""

    pass


class InvalidNodeError(ValidationError):
    """Raised when the node id list is malformed (e.g. duplicate ids)."""

    pass


class InvalidLinkError(ValidationError):
    """Raised when a link references unknown nodes."""

    pass


class InvalidDimensionError(ValidationError):
    """Raised when a dimension is invalid or vectors/arrays disagree on it."""

    pass


class InvalidParameterError(ValidationError):
    """Raised when a numeric parameter is out of range."""

    pass


class SimulationError(RuntimeError):
    """Base exception for simulation runtime misuse."""

    pass


class SchedulerError(SimulationError):
    """Raised when start() is called without a scheduler."""

    pass


class ForceNotAttachedError(SimulationError):
    """Raised when a force is applied before being attached."""

    pass


def validate_node_ids(node_ids: Sequence[Hashable]) -> dict[Hashable, int]:
    """
    Validate node ids are unique and build the id -> dense index lookup.

    Args:
        node_ids: Sequence of hashable external node ids

    Returns:
        Mapping from node id to its index in ``node_ids``

    Raises:
        InvalidNodeError: If an id appears more than once
    """
    lookup: dict[Hashable, int] = {}
    duplicates: list[Hashable] = []
    for i, node_id in enumerate(node_ids):
        if node_id in lookup:
            duplicates.append(node_id)
            continue
        lookup[node_id] = i

    if duplicates:
        shown = ", ".join(repr(d) for d in duplicates[:5])
        raise InvalidNodeError(f"Duplicate node ids: {shown}")

    return lookup


def validate_links(
    links: Sequence[Any],
    lookup: Mapping[Hashable, int],
    strict: bool = True,
) -> list[tuple[int, str]]:
    """
    Validate that every link source/target id is a known node id.

    Args:
        links: Sequence of Edge objects, (source, target) pairs or dicts
        lookup: Node id -> index mapping
        strict: If True, raises on invalid. If False, returns list of issues.

    Returns:
        List of (link_index, issue_description) tuples

    Raises:
        InvalidLinkError: If strict=True and invalid links found
    """
    issues: list[tuple[int, str]] = []

    for i, link in enumerate(links):
        try:
            src, tgt = _endpoints(link)
        except (KeyError, TypeError, ValueError):
            issues.append((i, f"Link {i}: cannot extract source/target from {link!r}"))
            continue

        if src not in lookup:
            issues.append((i, f"Link {i}: unknown source id {src!r}"))
        if tgt not in lookup:
            issues.append((i, f"Link {i}: unknown target id {tgt!r}"))

    if strict and issues:
        msg = "Invalid links:\n" + "\n".join(issue[1] for issue in issues)
        raise InvalidLinkError(msg)

    return issues


def resolve_links(
    links: Sequence[Any], lookup: Mapping[Hashable, int]
) -> list[tuple[int, int]]:
    """
    Validate links and map their endpoints to dense indices.

    Raises:
        InvalidLinkError: If any endpoint is unknown
    """
    validate_links(links, lookup, strict=True)
    resolved = []
    for link in links:
        src, tgt = _endpoints(link)
        resolved.append((lookup[src], lookup[tgt]))
    return resolved


def validate_dimension(dimension: int) -> int:
    """
    Validate the simulation dimension.

    Raises:
        InvalidDimensionError: If dimension < 1
    """
    if int(dimension) != dimension or dimension < 1:
        raise InvalidDimensionError(f"dimension must be a positive integer, got {dimension}")
    return int(dimension)


def validate_iterations(iterations: int) -> int:
    """
    Validate iteration count is positive.

    Raises:
        InvalidParameterError: If iterations < 1
    """
    if iterations < 1:
        raise InvalidParameterError(f"iterations must be >= 1, got {iterations}")
    return int(iterations)


def validate_alpha(alpha: float, name: str = "alpha") -> float:
    """
    Validate alpha-like values are in [0, 1].

    Raises:
        InvalidParameterError: If value not in [0, 1]
    """
    if alpha < 0 or alpha > 1:
        raise InvalidParameterError(f"{name} must be in [0, 1], got {alpha}")
    return float(alpha)


def validate_theta(theta: float) -> float:
    """
    Validate the Barnes-Hut threshold.

    Raises:
        InvalidParameterError: If theta < 0
    """
    if theta < 0:
        raise InvalidParameterError(f"theta must be >= 0, got {theta}")
    return float(theta)


def _endpoints(link: Any) -> tuple[Hashable, Hashable]:
    """Extract (source, target) ids from an Edge, pair or dict."""
    if isinstance(link, dict):
        return link["source"], link["target"]
    if hasattr(link, "source") and hasattr(link, "target"):
        return link.source, link.target
    src, tgt = link
    return src, tgt


__all__ = [
    "ValidationError",
    "InvalidNodeError",
    "InvalidLinkError",
    "InvalidDimensionError",
    "InvalidParameterError",
    "SimulationError",
    "SchedulerError",
    "ForceNotAttachedError",
    "validate_node_ids",
    "validate_links",
    "resolve_links",
    "validate_dimension",
    "validate_iterations",
    "validate_alpha",
    "validate_theta",
]
