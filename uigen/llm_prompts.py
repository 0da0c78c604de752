from __future__ import annotations

import json
import re
from typing import Any, Optional

from uigen.components import ALLOWED_COMPONENTS, props_catalogue

NO_CURRENT_CODE = "None - generating from scratch"

_COMPONENT_LIST = ", ".join(ALLOWED_COMPONENTS)

PLANNER_PROMPT = f"""You are a UI planner. Your job is to analyze user intent and create a structured plan.

RULES:
1. You can ONLY use these components: {_COMPONENT_LIST}
2. NO inline styles, NO custom CSS, NO new components
3. Output ONLY valid JSON

Analyze the user's request and output a JSON plan with this structure:
{{
  "layout": "describe the overall layout structure",
  "components": ["list", "of", "component", "names"],
  "reasoning": "explain why this layout and these components"
}}

User Request: {{userIntent}}

Current Code (if editing): {{currentCode}}

Output ONLY the JSON, nothing else."""

GENERATOR_PROMPT = f"""You are a UI code generator. Convert the plan into React code.

STRICT RULES:
1. ONLY use these components: {_COMPONENT_LIST}
2. Import them exactly like this:
import {{ {_COMPONENT_LIST} }} from './ComponentLibrary';
3. NO inline styles, NO style prop, NO className except those built into components
4. NO creating new components
5. Use React hooks (useState, etc.) as needed, imported from 'react'
6. The component must be a function named GeneratedUI
7. End with: export default GeneratedUI;

ALLOWED COMPONENTS AND THEIR PROPS:

{{catalogue}}

IMPORTANT DATA RULES:
- title, subtitle, label must be plain strings
- items arrays must contain plain objects
- Sidebar icons must be strings ("home", "user", "settings", ...)
- DO NOT use JSX inside data objects
- JSX is allowed only inside component children

PLAN:
{{plan}}

Current Code (if modifying): {{currentCode}}
{{editRules}}
Output ONLY the complete React component code, starting with imports. No explanations, no markdown."""

EDIT_RULES = """
IMPORTANT:
- If modifying existing code, make MINIMAL changes
- Preserve existing functionality
- Only change what the user requested
- Keep the same component instances where possible
"""

EXPLAINER_PROMPT = """You are a UI decision explainer. Explain what was done and why.

PLAN: {plan}
GENERATED CODE: {code}

Analyze the plan and code, then output a JSON with this structure:
{
  "decisions": ["key decision 1", "key decision 2"],
  "componentChoices": "explain which components were chosen and why",
  "layoutRationale": "explain the overall layout strategy"
}

Output ONLY the JSON, nothing else."""

_INCREMENTAL_KEYWORDS = (
    "change",
    "modify",
    "update",
    "add",
    "remove",
    "delete",
    "make it",
    "adjust",
    "fix",
    "alter",
    "edit",
    "replace",
)

_PLACEHOLDER_RE = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


def render_template(template: str, **values: Any) -> str:
    """Replace ``{name}`` placeholders with the given values.

    Only placeholders named in ``values`` are touched; JSON braces and unknown
    names stay verbatim, which is why ``str.format`` is not used here.
    """

    def _sub(m: re.Match[str]) -> str:
        key = m.group(1)
        if key not in values:
            return m.group(0)
        return str(values[key])

    return _PLACEHOLDER_RE.sub(_sub, template)


def is_incremental_edit(user_intent: str) -> bool:
    intent = (user_intent or "").lower()
    return any(keyword in intent for keyword in _INCREMENTAL_KEYWORDS)


def _plan_json(plan: Any) -> str:
    if hasattr(plan, "to_wire"):
        plan = plan.to_wire()
    return json.dumps(plan, ensure_ascii=False, indent=2)


def build_planner_prompt(user_intent: str, current_code: Optional[str] = None) -> str:
    return render_template(
        PLANNER_PROMPT,
        userIntent=user_intent,
        currentCode=(current_code or "").strip() or NO_CURRENT_CODE,
    )


def build_generator_prompt(plan: Any, current_code: Optional[str] = None, incremental: bool = False) -> str:
    code = (current_code or "").strip()
    return render_template(
        GENERATOR_PROMPT,
        catalogue=props_catalogue(),
        plan=_plan_json(plan),
        currentCode=code or NO_CURRENT_CODE,
        editRules=EDIT_RULES if (code and incremental) else "",
    )


def build_explainer_prompt(plan: Any, code: str) -> str:
    return render_template(EXPLAINER_PROMPT, plan=_plan_json(plan), code=code)

