from __future__ import annotations

from queuetap.io.readers import is_json_content, read_message, read_message_lines
from queuetap.io.writers import dump_json, dumps_json, write_events_jsonl

__all__ = [
    "dump_json",
    "dumps_json",
    "is_json_content",
    "read_message",
    "read_message_lines",
    "write_events_jsonl",
]
