import pytest

from uigen.errors import MalformedOutputError, MalformedPlanError
from uigen.llm_parsing import json_from_text, parse_explanation, parse_plan


def test_json_from_fenced_block():
    text = 'Here you go:\n```json\n{"layout": "grid", "components": ["Card"]}\n```'
    assert json_from_text(text) == {"layout": "grid", "components": ["Card"]}


def test_json_from_unlabelled_fence():
    text = '```\n{"a": 1}\n```'
    assert json_from_text(text) == {"a": 1}


def test_json_from_prose_with_braces_in_strings():
    text = 'Plan follows {"layout": "use {curly} text", "components": []} and that is all.'
    assert json_from_text(text) == {"layout": "use {curly} text", "components": []}


def test_json_with_trailing_commas_and_smart_quotes():
    text = "{“layout”: “stack”, “components”: [“Card”, “Button”,],}"
    assert json_from_text(text) == {"layout": "stack", "components": ["Card", "Button"]}


@pytest.mark.parametrize("text", ["", "   ", "no json here", "{broken"])
def test_json_from_text_raises(text):
    with pytest.raises(ValueError):
        json_from_text(text)


def test_parse_plan_ok():
    plan = parse_plan('{"layout": "Centered card", "components": ["Card", "Input", "Button"], "reasoning": "login"}')
    assert plan.layout == "Centered card"
    assert plan.components == ["Card", "Input", "Button"]
    assert plan.reasoning == "login"


def test_parse_plan_reasoning_optional():
    assert parse_plan('{"layout": "x", "components": []}').reasoning == ""


def test_parse_plan_missing_components():
    with pytest.raises(MalformedPlanError) as ei:
        parse_plan('{"layout": "x"}')
    assert "components" in str(ei.value)


def test_parse_plan_wrong_type():
    with pytest.raises(MalformedPlanError):
        parse_plan('{"layout": "x", "components": "Card"}')


def test_parse_plan_not_json():
    with pytest.raises(MalformedPlanError) as ei:
        parse_plan("I think you want a login form.")
    assert "invalid JSON" in str(ei.value)


def test_parse_explanation_camel_case():
    ex = parse_explanation(
        '```json\n{"decisions": ["Used Card"], "componentChoices": "Card groups the form", "layoutRationale": "Centered"}\n```'
    )
    assert ex.decisions == ["Used Card"]
    assert ex.component_choices == "Card groups the form"
    assert ex.layout_rationale == "Centered"


def test_parse_explanation_missing_decisions():
    with pytest.raises(MalformedOutputError) as ei:
        parse_explanation('{"componentChoices": "x"}')
    assert not isinstance(ei.value, MalformedPlanError)
