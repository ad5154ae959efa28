from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from queuetap.errors import TemplateNotFoundError
from queuetap.models import ConsumedEvent

logger = logging.getLogger(__name__)

TEST_STEPS_MARKER = "<!--#Teststeps#-->"
PAYLOAD_MARKER = "<!--#payload#-->"
STEP_NAME_MARKER = "[mtec] Patient anlegen"


def xml_escape(text: str) -> str:
    """Escape text for an XML attribute or element body."""
    if not text:
        return ""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&apos;")
    )


def step_name(index: int, event: ConsumedEvent) -> str:
    return f"Event_{index}_{event.timestamp:%H%M%S}"


def render_test_steps(events: list[ConsumedEvent], step_template: str) -> str:
    """One rendered test step per event, joined by newlines."""
    steps: list[str] = []
    for index, event in enumerate(events, start=1):
        step = step_template.replace(PAYLOAD_MARKER, xml_escape(event.payload()))
        step = step.replace(STEP_NAME_MARKER, f"[Generated] {step_name(index, event)}")
        steps.append(step)
    return "\n".join(steps)


def render_test_plan(events: list[ConsumedEvent], template: str, step_template: str) -> str:
    """Fill the plan template's test-step marker with steps built from `events`."""
    if not events:
        return template.replace(TEST_STEPS_MARKER, "")
    return template.replace(TEST_STEPS_MARKER, render_test_steps(events, step_template))


def _read_template(path: Path, label: str) -> str:
    if not path.is_file():
        raise TemplateNotFoundError(f"{label} file not found: {path}")
    return path.read_text(encoding="utf-8")


def generate_test_plan(
    events: list[ConsumedEvent],
    template_path: str | Path,
    step_template_path: str | Path,
    output_dir: str | Path = ".",
    *,
    now: datetime | None = None,
) -> Path:
    """Write a JMeter plan built from captured events and return its path."""
    template = _read_template(Path(template_path), "Template")
    step_template = _read_template(Path(step_template_path), "Teststep template")

    stamp = (now or datetime.now()).strftime("%Y-%m-%d_%H-%M-%S")
    output_path = Path(output_dir) / f"Generated_JMeter_Test_{stamp}.jmx"
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(render_test_plan(events, template, step_template), encoding="utf-8")
    logger.info("Wrote JMeter plan with %d test steps to %s", len(events), output_path)
    return output_path
