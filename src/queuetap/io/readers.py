from __future__ import annotations

from pathlib import Path
from typing import TextIO


def is_json_content(content: str) -> bool:
    """True when trimmed text is delimited like a JSON object or array."""
    text = content.strip()
    if not text:
        return False
    return (text.startswith("{") and text.endswith("}")) or (text.startswith("[") and text.endswith("]"))


def read_message(path: str | Path | None, stream: TextIO) -> str:
    """Read one whole message from a file, or from `stream` when path is None or '-'."""
    if path is None or str(path) == "-":
        return stream.read()
    with open(path, encoding="utf-8") as f:
        return f.read()


def read_message_stream(stream: TextIO) -> list[str]:
    """One message per non-blank line, with the line ending stripped."""
    return [line.rstrip("\r\n") for line in stream if line.strip()]


def read_message_lines(path: str | Path | None, stream: TextIO) -> list[str]:
    """Read line-delimited messages from a file, or from `stream` when path is None or '-'."""
    if path is None or str(path) == "-":
        return read_message_stream(stream)
    with open(path, encoding="utf-8") as f:
        return read_message_stream(f)
