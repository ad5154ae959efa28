from __future__ import annotations

import json
import logging

from queuetap.errors import MalformedPathError
from queuetap.jsonpath import parse_json_path, replace_all
from queuetap.models import ProcessingResult, ReplacementConfig, ReplacementRule

logger = logging.getLogger(__name__)


class ReplacementEngine:
    """Applies the configured replacement rules to JSON message bodies.

    Each call parses its own copy of the message, so a failure never leaves
    partial changes behind: bad JSON and bad rule paths degrade to "no
    replacement" instead of raising.
    """

    def __init__(self, config: ReplacementConfig) -> None:
        self.config = config

    def process(self, raw_text: str, is_json: bool) -> ProcessingResult:
        """Rewrite `raw_text` with every enabled rule.

        Returns the input untouched with no applied entries when replacements
        are disabled, the text is not JSON, no rule is enabled, or the text
        does not parse.
        """
        rules = self.config.enabled_rules()
        if not self.config.enable_replacements or not is_json or not rules:
            return ProcessingResult(output_text=raw_text)

        try:
            document = json.loads(raw_text)
        except (ValueError, RecursionError) as exc:
            logger.debug("Message is not valid JSON, leaving it unchanged: %s", exc)
            return ProcessingResult(output_text=raw_text)

        applied: list[str] = []
        for rule in rules:
            count = self._apply_rule(document, rule)
            applied.extend([rule.describe()] * count)

        return ProcessingResult(
            output_text=json.dumps(document, indent=2, ensure_ascii=False),
            applied=applied,
        )

    @staticmethod
    def _apply_rule(document: object, rule: ReplacementRule) -> int:
        try:
            segments = parse_json_path(rule.json_path)
        except MalformedPathError as exc:
            logger.debug("Skipping rule %r: %s", rule.json_path, exc)
            return 0
        try:
            count = replace_all(document, segments, rule.placeholder)  # type: ignore[arg-type]
        except RecursionError:
            logger.debug("Skipping rule %r: document nested too deeply", rule.json_path)
            return 0
        if count == 0:
            logger.debug("Rule %r matched nothing", rule.json_path)
        return count


def process_message(
    raw_text: str,
    is_json: bool,
    rules: list[ReplacementRule],
    *,
    enable_replacements: bool = True,
) -> ProcessingResult:
    """One-shot form of `ReplacementEngine.process` for an ad-hoc rule list."""
    config = ReplacementConfig(enable_replacements=enable_replacements, rules=rules)
    return ReplacementEngine(config).process(raw_text, is_json)
