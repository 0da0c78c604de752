from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional

from jsonschema import Draft202012Validator
from pydantic import ValidationError

from uigen.errors import MalformedOutputError, MalformedPlanError
from uigen.models import Explanation, PlanStep


PLAN_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "layout": {"type": "string"},
        "components": {"type": "array", "items": {"type": "string"}},
        "reasoning": {"type": "string"},
    },
    "required": ["layout", "components"],
}

EXPLANATION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "decisions": {"type": "array", "items": {"type": "string"}},
        "componentChoices": {"type": "string"},
        "layoutRationale": {"type": "string"},
    },
    "required": ["decisions"],
}

_PLAN_VALIDATOR = Draft202012Validator(PLAN_SCHEMA)
_EXPLANATION_VALIDATOR = Draft202012Validator(EXPLANATION_SCHEMA)


def _balanced_json_slice(s: str) -> Optional[str]:
    """Return the first balanced {...} object in ``s``, ignoring braces inside strings."""
    in_str = False
    esc = False
    depth = 0
    start_idx = -1
    for i, ch in enumerate(s):
        if in_str:
            if esc:
                esc = False
            elif ch == "\\":
                esc = True
            elif ch == '"':
                in_str = False
            continue
        if ch == '"':
            in_str = True
        elif ch == "{":
            if depth == 0:
                start_idx = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0 and start_idx != -1:
                return s[start_idx : i + 1]
    return None


def json_from_text(text: str) -> Any:
    """Extract a JSON object from model text; raise ValueError on failure.

    Strategy:
    - Try fenced blocks: ```json ...``` first, then any ``` ... ```.
    - Try the first balanced {...} object (string-aware).
    - Sanitize: remove trailing commas, normalize smart quotes, retry.
    """
    t = (text or "").strip()
    if not t:
        raise ValueError("empty model output")

    candidates: List[str] = []
    m = re.search(r"```json\s*([\s\S]*?)```", t, re.IGNORECASE)
    if m:
        candidates.append(m.group(1))
    else:
        m2 = re.search(r"```[a-zA-Z]*\s*([\s\S]*?)```", t)
        if m2:
            candidates.append(m2.group(1))
    sliced = _balanced_json_slice(t)
    if sliced:
        candidates.append(sliced)
    candidates.append(t)

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            pass
        s = re.sub(r",\s*([}\]])", r"\1", candidate)
        s = s.replace("“", '"').replace("”", '"').replace("’", "'")
        try:
            return json.loads(s)
        except json.JSONDecodeError:
            continue
    raise ValueError("No JSON object found in model output")


def schema_errors(validator: Draft202012Validator, instance: Any) -> List[Dict[str, str]]:
    errors: List[Dict[str, str]] = []
    for err in validator.iter_errors(instance):
        loc = ".".join(str(p) for p in err.path) or "(root)"
        errors.append({"path": loc, "message": str(err.message)})
    return errors


def _format_errors(errors: List[Dict[str, str]]) -> str:
    return "; ".join(f"{e['path']}: {e['message']}" for e in errors[:5])


def parse_plan(text: str) -> PlanStep:
    try:
        data = json_from_text(text)
    except ValueError as exc:
        raise MalformedPlanError(f"Planner returned invalid JSON: {exc}") from exc
    errors = schema_errors(_PLAN_VALIDATOR, data)
    if errors:
        raise MalformedPlanError(f"Planner output failed validation: {_format_errors(errors)}")
    try:
        return PlanStep.model_validate(data)
    except ValidationError as exc:
        raise MalformedPlanError(f"Planner output failed validation: {exc.error_count()} error(s)") from exc


def parse_explanation(text: str) -> Explanation:
    try:
        data = json_from_text(text)
    except ValueError as exc:
        raise MalformedOutputError(f"Explainer returned invalid JSON: {exc}") from exc
    errors = schema_errors(_EXPLANATION_VALIDATOR, data)
    if errors:
        raise MalformedOutputError(f"Explainer output failed validation: {_format_errors(errors)}")
    try:
        return Explanation.model_validate(data)
    except ValidationError as exc:
        raise MalformedOutputError(f"Explainer output failed validation: {exc.error_count()} error(s)") from exc
