"""Structural comparison of resource states."""

from __future__ import annotations

from dataclasses import fields, is_dataclass
from typing import Any

from loguru import logger


def differing_fields(actual: Any, expected: Any) -> list[str]:
    """Names of the compared fields that differ between two states.

    Only fields declared with ``compare=True`` take part. Provider ids and
    cache slots are declared ``compare=False`` by the state classes.

    Raises:
        TypeError: If the states are not dataclasses of the same kind.
    """
    if not (is_dataclass(actual) and is_dataclass(expected)):
        raise TypeError("Resource states must be dataclass instances")
    if type(actual) is not type(expected):
        raise TypeError(
            f"Cannot compare {type(actual).__name__} with {type(expected).__name__}"
        )
    return [
        f.name
        for f in fields(actual)
        if f.compare and getattr(actual, f.name) != getattr(expected, f.name)
    ]


def is_equal(actual: Any, expected: Any) -> bool:
    diff = differing_fields(actual, expected)
    if diff:
        logger.debug(f"{type(actual).__name__} differs on: {', '.join(diff)}")
    return not diff
