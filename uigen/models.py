from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class _Wire(BaseModel):
    # camelCase on the wire, snake_case in Python; accept either on input
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class PlanStep(_Wire):
    layout: str
    components: List[str] = Field(default_factory=list)
    reasoning: str = ""


class GeneratedCode(_Wire):
    code: str
    component_usage: List[str] = Field(default_factory=list, alias="componentUsage")


class Explanation(_Wire):
    decisions: List[str] = Field(default_factory=list)
    component_choices: str = Field("", alias="componentChoices")
    layout_rationale: str = Field("", alias="layoutRationale")


class AgentResult(_Wire):
    plan: PlanStep
    code: GeneratedCode
    explanation: Explanation
