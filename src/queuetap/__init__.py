from __future__ import annotations

from queuetap.engine import ReplacementEngine, process_message
from queuetap.errors import MalformedPathError, QueueTapError
from queuetap.jsonpath import PathSegment, extract_json_paths, parse_json_path, replace_all
from queuetap.models import ConsumedEvent, ProcessingResult, ReplacementConfig, ReplacementRule

__all__ = [
    "ConsumedEvent",
    "MalformedPathError",
    "PathSegment",
    "ProcessingResult",
    "QueueTapError",
    "ReplacementConfig",
    "ReplacementEngine",
    "ReplacementRule",
    "extract_json_paths",
    "parse_json_path",
    "process_message",
    "replace_all",
]
