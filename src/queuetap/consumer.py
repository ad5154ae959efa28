from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Mapping

from queuetap.engine import ReplacementEngine
from queuetap.io.readers import is_json_content
from queuetap.models import ConsumedEvent
from queuetap.store import EventStore

logger = logging.getLogger(__name__)


@dataclass
class DeliveryProperties:
    """Broker message properties carried alongside a delivered body."""

    content_type: str | None = None
    message_id: str | None = None
    correlation_id: str | None = None
    timestamp: int = 0  # unix seconds; 0 when unset
    headers: Mapping[str, object] = field(default_factory=dict)


def decode_header_value(value: object) -> str:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, str):
        return value
    if value is None:
        return "null"
    return str(value)


class EventProcessor:
    """Turns broker deliveries into stored `ConsumedEvent` records."""

    def __init__(self, engine: ReplacementEngine, store: EventStore) -> None:
        self.engine = engine
        self.store = store

    def handle(
        self,
        body: bytes | str,
        *,
        exchange: str | None = None,
        routing_key: str | None = None,
        delivery_tag: int = 0,
        properties: DeliveryProperties | None = None,
    ) -> ConsumedEvent:
        """Process one delivery and store it, even when processing fails."""
        event = ConsumedEvent(
            exchange=exchange or "(default)",
            routing_key=routing_key or "(none)",
            delivery_tag=delivery_tag,
        )
        try:
            self._fill(event, body, properties)
        except Exception as exc:
            logger.warning("Failed to process delivery %s: %s", delivery_tag, exc)
            event.processed_successfully = False
            event.error_message = str(exc)

        self.store.add(event)
        return event

    def _fill(self, event: ConsumedEvent, body: bytes | str, properties: DeliveryProperties | None) -> None:
        if isinstance(body, str):
            raw = body.encode("utf-8")
            message = body
        else:
            raw = bytes(body)
            message = raw.decode("utf-8", errors="replace")

        event.message = message
        event.message_size = len(raw)
        event.is_json = is_json_content(message)

        if event.is_json:
            result = self.engine.process(message, event.is_json)
            if result.has_replacements:
                event.processed_message = result.output_text
                event.has_replacements = True
                event.applied_replacements.extend(result.applied)

        if properties is None:
            return
        event.content_type = properties.content_type
        event.message_id = properties.message_id
        event.correlation_id = properties.correlation_id
        if properties.timestamp > 0:
            event.message_timestamp = datetime.fromtimestamp(properties.timestamp, tz=timezone.utc)
        for key, value in properties.headers.items():
            event.headers[key] = decode_header_value(value)
