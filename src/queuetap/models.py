from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_pascal

# Settings files use the PascalCase keys of appsettings.json ("JsonPath", "EnableReplacements").
_SETTINGS_MODEL_CONFIG = ConfigDict(alias_generator=to_pascal, populate_by_name=True)


class ReplacementRule(BaseModel):
    """One configured path -> placeholder replacement."""

    model_config = _SETTINGS_MODEL_CONFIG

    json_path: str = ""
    placeholder: str = ""
    enabled: bool = True
    description: str = ""

    def describe(self) -> str:
        """Applied-rule entry recorded for each replacement this rule makes."""
        return f"{self.json_path} → {self.placeholder}"


class ReplacementConfig(BaseModel):
    """Replacement switches and the ordered rule list."""

    model_config = _SETTINGS_MODEL_CONFIG

    enable_replacements: bool = False
    show_original_message: bool = True
    show_processed_message: bool = True
    rules: list[ReplacementRule] = Field(default_factory=list)

    def enabled_rules(self) -> list[ReplacementRule]:
        return [rule for rule in self.rules if rule.enabled]


class BrokerConfig(BaseModel):
    """Connection and queue settings for the message broker."""

    model_config = _SETTINGS_MODEL_CONFIG

    enabled: bool = True
    host_name: str = "localhost"
    port: int = 5672
    username: str = "guest"
    password: str = "guest"
    queue_name: str = "events_queue"
    virtual_host: str = "/"
    auto_ack: bool = False
    durable: bool = True
    exclusive: bool = False
    auto_delete: bool = False


class ProcessingResult(BaseModel):
    """Output of running the replacement rules over one message."""

    output_text: str
    applied: list[str] = Field(default_factory=list)

    @property
    def has_replacements(self) -> bool:
        return bool(self.applied)


class ConsumedEvent(BaseModel):
    """A delivered message plus what happened to it."""

    timestamp: datetime = Field(default_factory=datetime.now)
    exchange: str = ""
    routing_key: str = ""
    delivery_tag: int = 0
    message: str = ""
    processed_message: str | None = None
    has_replacements: bool = False
    message_size: int = 0
    content_type: str | None = None
    message_id: str | None = None
    correlation_id: str | None = None
    message_timestamp: datetime | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    is_json: bool = False
    processed_successfully: bool = True
    error_message: str | None = None
    applied_replacements: list[str] = Field(default_factory=list)

    def payload(self) -> str:
        """Processed message when replacements were applied, otherwise the original."""
        if self.has_replacements and self.processed_message:
            return self.processed_message
        return self.message


class EventStats(BaseModel):
    """Summary over the stored event history."""

    total: int
    successful: int
    failed: int
    json_events: int
    text_events: int
    with_replacements: int
    first_event: datetime | None = None
    last_event: datetime | None = None
    events_per_second: float | None = None
    content_types: dict[str, int] = Field(default_factory=dict)
