"""Chat stream protocol: frame parsing, frame encoding and event application."""

from fpl_chat.streaming.encoder import encode_event, encode_stream
from fpl_chat.streaming.parser import FrameDecoder, aparse_stream, parse_stream
from fpl_chat.streaming.reducer import apply_event, apply_events

__all__ = [
    "FrameDecoder",
    "aparse_stream",
    "apply_event",
    "apply_events",
    "encode_event",
    "encode_stream",
    "parse_stream",
]
