from __future__ import annotations

import xml.etree.ElementTree as ET
from datetime import datetime

import pytest

from queuetap.errors import TemplateNotFoundError
from queuetap.jmx import generate_test_plan, render_test_plan, render_test_steps, xml_escape
from queuetap.models import ConsumedEvent

TEMPLATE = (
    '<jmeterTestPlan version="1.2" properties="5.0">'
    "<hashTree><TestPlan testname=\"Generated\"/><hashTree><!--#Teststeps#--></hashTree></hashTree>"
    "</jmeterTestPlan>"
)
STEP_TEMPLATE = (
    '<HTTPSamplerProxy testname="[mtec] Patient anlegen">'
    '<stringProp name="Argument.value"><!--#payload#--></stringProp>'
    "</HTTPSamplerProxy>"
)


def _event(hour: int, minute: int, second: int, message: str, **kwargs) -> ConsumedEvent:
    return ConsumedEvent(timestamp=datetime(2024, 1, 15, hour, minute, second), message=message, **kwargs)


def test_xml_escape_escapes_markup_characters() -> None:
    assert xml_escape("") == ""
    assert xml_escape("""<a href="x">Tom & 'Jerry'</a>""") == (
        "&lt;a href=&quot;x&quot;&gt;Tom &amp; &apos;Jerry&apos;&lt;/a&gt;"
    )
    assert xml_escape("&lt;") == "&amp;lt;"


def test_render_test_plan_without_events_removes_marker() -> None:
    content = render_test_plan([], TEMPLATE, STEP_TEMPLATE)

    assert "<!--#Teststeps#-->" not in content
    assert "HTTPSamplerProxy" not in content
    ET.fromstring(content)


def test_render_test_steps_names_and_escapes_each_event() -> None:
    events = [
        _event(10, 30, 45, '{"userId": "12345", "action": "login"}', is_json=True),
        _event(11, 0, 5, "plain <text>"),
    ]

    steps = render_test_steps(events, STEP_TEMPLATE)

    assert "[Generated] Event_1_103045" in steps
    assert "[Generated] Event_2_110005" in steps
    assert "[mtec] Patient anlegen" not in steps
    assert "<!--#payload#-->" not in steps
    assert "&quot;userId&quot;" in steps
    assert "plain &lt;text&gt;" in steps
    assert steps.count("\n") == 1


def test_render_test_plan_uses_processed_message_when_replaced() -> None:
    event = _event(
        14,
        22,
        30,
        '{"userId": "12345", "sessionId": "abc123"}',
        processed_message='{"userId": "${UserId}", "sessionId": "${SessionId}"}',
        has_replacements=True,
    )

    content = render_test_plan([event], TEMPLATE, STEP_TEMPLATE)

    assert "${UserId}" in content
    assert "12345" not in content
    root = ET.fromstring(content)
    prop = root.find(".//stringProp")
    assert prop is not None
    assert prop.text == '{"userId": "${UserId}", "sessionId": "${SessionId}"}'


def test_generate_test_plan_writes_timestamped_file(tmp_path) -> None:
    template = tmp_path / "JMeterTemplate.jmx"
    step_template = tmp_path / "Teststep.jmx"
    template.write_text(TEMPLATE)
    step_template.write_text(STEP_TEMPLATE)
    events = [_event(10, 30, 45, '{"userId": "12345"}')]

    output = generate_test_plan(
        events,
        template,
        step_template,
        tmp_path / "out",
        now=datetime(2024, 1, 15, 10, 31, 0),
    )

    assert output == tmp_path / "out" / "Generated_JMeter_Test_2024-01-15_10-31-00.jmx"
    content = output.read_text()
    assert "[Generated] Event_1_103045" in content
    ET.fromstring(content)


def test_generate_test_plan_requires_both_templates(tmp_path) -> None:
    template = tmp_path / "JMeterTemplate.jmx"
    template.write_text(TEMPLATE)

    with pytest.raises(TemplateNotFoundError):
        generate_test_plan([], tmp_path / "missing.jmx", template, tmp_path)
    with pytest.raises(TemplateNotFoundError):
        generate_test_plan([], template, tmp_path / "missing-step.jmx", tmp_path)
    assert list(tmp_path.glob("Generated_JMeter_Test_*.jmx")) == []
