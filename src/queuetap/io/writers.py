from __future__ import annotations

import json
from typing import TYPE_CHECKING, TextIO

if TYPE_CHECKING:
    from queuetap.models import ConsumedEvent


def dump_json(data: object, fp: TextIO, *, pretty: bool = False) -> None:
    """Write JSON to a stream with compact output by default."""
    fp.write(dumps_json(data, pretty=pretty))
    fp.write("\n")


def dumps_json(data: object, *, pretty: bool = False) -> str:
    """Serialize JSON to a string with compact output by default."""
    if pretty:
        return json.dumps(data, indent=2, ensure_ascii=False)
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


def write_events_jsonl(events: list[ConsumedEvent], fp: TextIO) -> None:
    """Write events as JSONL, one event per line."""
    for event in events:
        fp.write(event.model_dump_json() + "\n")
