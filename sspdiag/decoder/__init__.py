"""SSP raw data decoding."""

from .fragment import FragmentSet, InvalidFragmentError, RawFragment, RawTrigger, iter_triggers
from .header import (
    HEADER_WORDS,
    HeaderDecodeError,
    SSPDecodeError,
    TriggerHeader,
    decode_header,
    encode_header,
    format_header,
)

__all__ = [
    "FragmentSet",
    "HEADER_WORDS",
    "HeaderDecodeError",
    "InvalidFragmentError",
    "RawFragment",
    "RawTrigger",
    "SSPDecodeError",
    "TriggerHeader",
    "decode_header",
    "encode_header",
    "format_header",
    "iter_triggers",
]
