"""Walk an SSP fragment payload trigger by trigger."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterator

import numpy as np

from sspdiag.decoder.header import HEADER_DTYPE, HEADER_WORDS, SSPDecodeError

LOGGER = logging.getLogger(__name__)


class InvalidFragmentError(SSPDecodeError):
    """Fragment collection for an event was flagged invalid by the host."""


@dataclass(frozen=True)
class RawFragment:
    """One SSP fragment: little-endian 32-bit trigger words plus metadata."""

    payload: bytes
    sequence: int = 0
    n_triggers: int | None = None

    @property
    def n_words(self) -> int:
        return len(self.payload) // 4


@dataclass(frozen=True)
class FragmentSet:
    """All fragments of one event for the configured fragment type."""

    fragments: tuple[RawFragment, ...] = field(default_factory=tuple)
    valid: bool = True

    def ordered(self) -> list[RawFragment]:
        return sorted(self.fragments, key=lambda frag: frag.sequence)

    def __len__(self) -> int:
        return len(self.fragments)


@dataclass(frozen=True)
class RawTrigger:
    offset_words: int
    length: int
    raw_header: np.void

    @property
    def n_adc(self) -> int:
        return (self.length - HEADER_WORDS) * 2

    @property
    def end_words(self) -> int:
        return self.offset_words + HEADER_WORDS + self.n_adc // 2


def fragment_words(fragment: RawFragment) -> np.ndarray:
    """Payload as a read-only uint32 view; trailing partial words are ignored."""

    usable = fragment.n_words * 4
    if usable != len(fragment.payload):
        LOGGER.warning(
            "fragment %d: payload of %d bytes is not word aligned, ignoring %d trailing bytes",
            fragment.sequence,
            len(fragment.payload),
            len(fragment.payload) - usable,
        )
    return np.frombuffer(fragment.payload, dtype="<u4", count=fragment.n_words)


def iter_triggers(fragment: RawFragment) -> Iterator[RawTrigger]:
    """Yield trigger headers in buffer order without reading past the payload.

    Stops at the end of the buffer, after ``n_triggers`` headers when the
    fragment declares a count, or at the first header whose declared length
    is too short or runs past the end of the buffer.
    """

    words = fragment_words(fragment)
    n_words = len(words)
    limit = fragment.n_triggers or 0
    cursor = 0
    processed = 0

    while cursor < n_words and (limit == 0 or processed < limit):
        if cursor + HEADER_WORDS > n_words:
            LOGGER.warning(
                "fragment %d: truncated header at word %d (%d words left)",
                fragment.sequence,
                cursor,
                n_words - cursor,
            )
            return

        raw = np.frombuffer(words[cursor : cursor + HEADER_WORDS].tobytes(), dtype=HEADER_DTYPE)[0]
        length = int(raw["length"])
        if length < HEADER_WORDS:
            LOGGER.warning(
                "fragment %d: header at word %d declares length %d < %d, stopping",
                fragment.sequence,
                cursor,
                length,
                HEADER_WORDS,
            )
            return

        trigger = RawTrigger(offset_words=cursor, length=length, raw_header=raw)
        if trigger.end_words > n_words:
            LOGGER.warning(
                "fragment %d: trigger at word %d needs %d words, only %d left",
                fragment.sequence,
                cursor,
                length,
                n_words - cursor,
            )
            return

        yield trigger
        processed += 1
        cursor = trigger.end_words

    if limit and processed < limit:
        LOGGER.debug("fragment %d: decoded %d of %d declared triggers", fragment.sequence, processed, limit)
