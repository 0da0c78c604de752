"""Planner -> Generator -> Explainer orchestration.

The three calls are strictly sequential: each prompt embeds the previous
stage's output. Any failure aborts the cycle with a single GenerationError;
nothing is retried and no partial result is returned.
"""
from __future__ import annotations

import logging
import time
from typing import Optional

from uigen import llm_client
from uigen.components import is_allowed
from uigen.errors import MissingInputError
from uigen.llm_parsing import parse_explanation, parse_plan
from uigen.llm_prompts import (
    build_explainer_prompt,
    build_generator_prompt,
    build_planner_prompt,
    is_incremental_edit,
)
from uigen.models import AgentResult, GeneratedCode
from uigen.sanitizer import sanitize
from uigen.validators import extract_component_usage, scan_component_tags, validate_components

log = logging.getLogger(__name__)


def run_agent(user_intent: str, current_code: Optional[str], api_key: str) -> AgentResult:
    intent = (user_intent or "").strip()
    key = (api_key or "").strip()
    if not key:
        raise MissingInputError("API key required")
    if not intent:
        raise MissingInputError("User intent required")

    started = time.monotonic()
    incremental = bool((current_code or "").strip()) and is_incremental_edit(intent)

    log.info("agent.planner: start incremental=%s", incremental)
    plan = parse_plan(llm_client.complete(build_planner_prompt(intent, current_code), key))
    unknown = [c for c in plan.components if not is_allowed(c)]
    if unknown:
        # The plan is advisory; only the generated code is validated.
        log.warning("agent.planner: plan names unknown components=%s", unknown)
    log.info("agent.planner: done layout=%r components=%s", plan.layout[:60], plan.components)

    log.info("agent.generator: start")
    raw = llm_client.complete(build_generator_prompt(plan, current_code, incremental), key)
    code = sanitize(raw)
    usage = extract_component_usage(code)
    log.info("agent.generator: done chars=%d components=%s", len(code), usage)

    validate_components(scan_component_tags(code))

    log.info("agent.explainer: start")
    explanation = parse_explanation(llm_client.complete(build_explainer_prompt(plan, code), key))
    log.info(
        "agent.explainer: done decisions=%d dur_ms=%d",
        len(explanation.decisions),
        int((time.monotonic() - started) * 1000),
    )

    return AgentResult(
        plan=plan,
        code=GeneratedCode(code=code, component_usage=usage),
        explanation=explanation,
    )
