"""Split oversized lines into bounded, sequence-tagged fragments."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from stdout2collectd.limits import DEFAULT_MAX_EVENT_ID

if TYPE_CHECKING:
    from collections.abc import Iterator


@dataclass(frozen=True, slots=True)
class Fragment:
    """A slice of one input line and its position among that line's fragments.

    Sequence numbers restart at 0 for every line and wrap after ``max_id``,
    so they distinguish neighbouring fragments but do not count them.
    """

    seq: int
    data: bytes


def split(line: bytes, max_len: int, max_id: int = DEFAULT_MAX_EVENT_ID) -> Iterator[Fragment]:
    """Yield the fragments of ``line``, each at most ``max_len`` bytes.

    Splitting is on raw byte boundaries; a multi-byte character may end up
    in two fragments. A line that fits (including an empty one) yields a
    single fragment with sequence number 0.

    Args:
        line: Raw line bytes without the line terminator.
        max_len: Maximum fragment length in bytes.
        max_id: Largest sequence number before wrapping back to 0.

    Raises:
        ValueError: If ``max_len`` is not positive or ``max_id`` is negative.
    """
    if max_len <= 0:
        raise ValueError(f"max_len must be positive, got {max_len}")
    if max_id < 0:
        raise ValueError(f"max_id must not be negative, got {max_id}")
    return _split(line, max_len, max_id)


def _split(line: bytes, max_len: int, max_id: int) -> Iterator[Fragment]:
    if len(line) <= max_len:
        yield Fragment(0, line)
        return
    for index, start in enumerate(range(0, len(line), max_len)):
        yield Fragment(index % (max_id + 1), line[start : start + max_len])


def fragment_count(length: int, max_len: int) -> int:
    """Number of fragments ``split`` produces for a line of ``length`` bytes."""
    chunks, rem = divmod(length, max_len)
    return max(1, chunks + (1 if rem else 0))
