"""Canonical string encodings for structured answers."""

from __future__ import annotations

from typing import List, Mapping, Sequence

__all__ = [
    "SEQUENCE_SEPARATOR",
    "PAIR_ARROW",
    "PAIR_SEPARATOR",
    "encode_matching",
    "encode_sequence",
    "encode_simple",
    "split_sequence",
]

SEQUENCE_SEPARATOR = " || "
PAIR_ARROW = " -> "
PAIR_SEPARATOR = ", "


def encode_sequence(items: Sequence[str]) -> str:
    """Join items in their current working order."""

    return SEQUENCE_SEPARATOR.join(items)


def split_sequence(encoded: str) -> List[str]:
    if not encoded:
        return []
    return encoded.split(SEQUENCE_SEPARATOR)


def encode_matching(selections: Mapping[str, str]) -> str:
    """Render ``{left: right}`` as ``left -> right`` pairs in insertion order."""

    return PAIR_SEPARATOR.join(
        f"{left}{PAIR_ARROW}{right}" for left, right in selections.items()
    )


def encode_simple(text: str) -> str:
    return text
