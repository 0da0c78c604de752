from __future__ import annotations

from typing import Dict, List, Tuple

# Closed set of building blocks generated code may reference. Order matters:
# usage lists and prompts are emitted in this order.
ALLOWED_COMPONENTS: Tuple[str, ...] = (
    "Button",
    "Card",
    "Input",
    "Table",
    "Modal",
    "Sidebar",
    "Navbar",
    "Chart",
)

_ALLOWED_SET = frozenset(ALLOWED_COMPONENTS)

# Tags that are structural rather than library components.
FRAGMENT_TAGS = frozenset({"Fragment", "React.Fragment"})

COMPONENT_PROPS: Dict[str, List[str]] = {
    "Button": [
        "children",
        "onClick",
        "variant ('primary'|'secondary'|'danger'|'ghost')",
        "size ('small'|'medium'|'large')",
        "disabled",
    ],
    "Card": [
        "children",
        "title (string)",
        "subtitle (string)",
        "footer",
        "variant ('default'|'elevated'|'bordered')",
    ],
    "Input": [
        "label (string)",
        "placeholder",
        "type ('text'|'email'|'password'|'number')",
        "value",
        "onChange",
        "error",
        "disabled",
    ],
    "Table": ["headers (string[])", "rows (string[][])", "striped (boolean)"],
    "Modal": ["isOpen", "onClose", "title (string)", "children", "footer"],
    "Sidebar": [
        "isOpen",
        "items (Array<{icon: string, label: string, id: string}>)",
        "onItemClick",
    ],
    "Navbar": ["title (string)", "items (Array<{label: string, onClick}>)", "onMenuClick"],
    "Chart": ["type ('line'|'bar')", "data (any[])", "xKey", "yKey", "title (string)"],
}


def is_allowed(name: str) -> bool:
    return name in _ALLOWED_SET


def props_catalogue() -> str:
    """Render the prop reference embedded in the Generator prompt."""
    lines: List[str] = []
    for name in ALLOWED_COMPONENTS:
        lines.append(f"{name}:")
        lines.append("- " + ", ".join(COMPONENT_PROPS[name]))
        lines.append("")
    return "\n".join(lines).rstrip()
