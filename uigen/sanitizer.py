"""Best-effort repair of raw Generator output before it reaches the preview.

Each rule is a pure ``str -> str`` function that can be applied and tested on
its own; ``sanitize`` runs them in order. The rules work on text, not on a
parse tree, so code whose shape differs from the anticipated one passes
through unchanged rather than being rejected. Every rule is idempotent, which
makes ``sanitize`` idempotent as well.
"""
from __future__ import annotations

import logging
import re
from typing import Callable, List, Tuple

log = logging.getLogger(__name__)

DEFAULT_COMPONENT_NAME = "GeneratedUI"

# Placeholder text substituted when a data field holds markup instead of a string.
FIELD_PLACEHOLDERS = {
    "label": "Item",
    "title": "Title",
    "subtitle": "Subtitle",
    "footer": "Footer",
}

_LEADING_FENCE_RE = re.compile(r"^```[\w+-]*[ \t]*\n?")
_TRAILING_FENCE_RE = re.compile(r"\n?```[ \t]*$")
_FENCED_BLOCK_RE = re.compile(r"```[\w+-]*[ \t]*\n([\s\S]*?)\n?```")

_REACT_DEFAULT_IMPORT_RE = re.compile(
    r"^[ \t]*import\s+(?:\*\s+as\s+)?React\s+from\s*['\"]react['\"][ \t]*;?[ \t]*(?:\n|$)",
    re.MULTILINE,
)
_REACT_NAMED_IMPORT_RE = re.compile(
    r"^[ \t]*import\s+(?:React\s*,\s*)?\{([^}]*)\}\s*from\s*['\"]react['\"][ \t]*;?",
    re.MULTILINE,
)
_LIBRARY_NAMED_IMPORT_RE = re.compile(
    r"^[ \t]*import\s+\{([^}]*)\}\s*from\s*['\"][^'\"\n]*ComponentLibrary['\"][ \t]*;?",
    re.MULTILINE,
)
_LIBRARY_NAMESPACE_IMPORT_RE = re.compile(
    r"^[ \t]*import\s+(?:\*\s+as\s+)?([A-Za-z_$][\w$]*)\s+from\s*['\"][^'\"\n]*ComponentLibrary['\"][ \t]*;?",
    re.MULTILINE,
)

_EXPORT_DEFAULT_RE = re.compile(r"\bexport\s+default\b")
# Capitalised, with at least one lowercase letter: GeneratedUI, LoginForm; not COLORS.
_COMPONENT_DECL_RE = re.compile(
    r"^(?:export\s+)?(?:function\s+|(?:const|let|var)\s+)([A-Z][\w$]*[a-z][\w$]*)\b",
    re.MULTILINE,
)

_ATTRS = r"(?:\s(?:[^<>{}]|\{[^{}]*\})*?)?"
# key: followed by an element; the element's extent is found by _element_end
_MARKUP_IN_DATA_RE = re.compile(
    r"(?P<lead>[{,][ \t]*\n?[ \t]*|^[ \t]*)"
    r"(?P<key>(?:label|title|subtitle|footer)['\"]?)"
    r"(?P<sep>[ \t]*:[ \t]*)"
    r"(?P<paren>\([ \t\n]*)?"
    r"(?=<)",
    re.MULTILINE,
)
# One opening, closing or self-closing tag; <> and </> have no name.
_TAG_RE = re.compile(r"<(?P<close>/?)(?:(?P<name>[A-Za-z][\w.]*)" + _ATTRS + r"(?P<self>/?))?>")
_CLOSE_PAREN_RE = re.compile(r"[ \t\n]*\)")


def _split_bindings(inner: str) -> List[str]:
    """Turn an import list into destructuring entries (``a as b`` -> ``a: b``)."""
    out: List[str] = []
    for raw in inner.split(","):
        item = " ".join(raw.split())
        if not item or item.startswith("type "):
            continue
        if " as " in item:
            src, alias = [p.strip() for p in item.split(" as ", 1)]
            item = f"{src}: {alias}"
        out.append(item)
    return out


def strip_code_fences(code: str) -> str:
    """Remove markdown fences around the code.

    Triggers on text starting with ```lang (the closing ``` and any prose
    after it are dropped too), or on prose with a fenced block somewhere
    inside it, in which case only the block's body is kept. An unclosed
    leading fence is simply removed.
    """
    t = (code or "").strip()
    if t.startswith("```"):
        m = _FENCED_BLOCK_RE.match(t)
        if m:
            # anything after the closing fence is commentary
            return m.group(1).strip()
        t = _LEADING_FENCE_RE.sub("", t, count=1)
        t = _TRAILING_FENCE_RE.sub("", t, count=1)
        return t.strip()
    m = _FENCED_BLOCK_RE.search(t)
    if m:
        return m.group(1).strip()
    return t


def rewrite_react_imports(code: str) -> str:
    """Bind React imports to the ``React`` object injected into the sandbox.

    Triggers:
    - ``import React from 'react'`` / ``import * as React from 'react'``: dropped.
    - ``import { useState, useEffect } from 'react'`` (also ``React, { ... }``
      and lists spanning several lines): ``const { useState, useEffect } = React;``.
    """

    def _named(m: re.Match[str]) -> str:
        names = _split_bindings(m.group(1))
        if not names:
            return ""
        return "const { " + ", ".join(names) + " } = React;"

    code = _REACT_NAMED_IMPORT_RE.sub(_named, code)
    return _REACT_DEFAULT_IMPORT_RE.sub("", code)


def rewrite_library_imports(code: str) -> str:
    """Bind component-library imports to the injected ``ComponentLibrary`` registry.

    Triggers on imports from any module path ending in ``ComponentLibrary``
    (``./ComponentLibrary``, ``@/components/ComponentLibrary``):
    - ``import { Button, Card as Box } from ...``: ``const { Button, Card: Box } = ComponentLibrary;``
    - ``import * as UI from ...`` / ``import UI from ...``: ``const UI = ComponentLibrary;``
    """

    def _named(m: re.Match[str]) -> str:
        names = _split_bindings(m.group(1))
        if not names:
            return ""
        return "const { " + ", ".join(names) + " } = ComponentLibrary;"

    def _namespace(m: re.Match[str]) -> str:
        alias = m.group(1)
        if alias == "ComponentLibrary":
            return ""
        return f"const {alias} = ComponentLibrary;"

    code = _LIBRARY_NAMED_IMPORT_RE.sub(_named, code)
    return _LIBRARY_NAMESPACE_IMPORT_RE.sub(_namespace, code)


def default_component_name(code: str) -> str:
    names = _COMPONENT_DECL_RE.findall(code)
    if DEFAULT_COMPONENT_NAME in names:
        return DEFAULT_COMPONENT_NAME
    return names[0] if names else DEFAULT_COMPONENT_NAME


def ensure_default_export(code: str) -> str:
    """Append ``export default <Name>;`` when the code has no default export.

    Name is the first top-level capitalised function/const declaration,
    ``GeneratedUI`` when declared or when nothing else is found.
    """
    if not code.strip() or _EXPORT_DEFAULT_RE.search(code):
        return code
    name = default_component_name(code)
    return code.rstrip() + f"\n\nexport default {name};"


def _element_end(code: str, pos: int) -> int:
    """Index just past the element opened at ``pos``, or -1 if it never closes.

    Same-name tags nested inside the element are counted, so
    ``<span><span>x</span></span>`` ends after the outer ``</span>``.
    """
    first = _TAG_RE.match(code, pos)
    if not first or first.group("close"):
        return -1
    if first.group("self"):
        return first.end()
    name = first.group("name")
    depth = 1
    for tag in _TAG_RE.finditer(code, first.end()):
        if tag.group("name") != name:
            continue
        if tag.group("close"):
            depth -= 1
            if depth == 0:
                return tag.end()
        elif not tag.group("self"):
            depth += 1
    return -1


def repair_markup_in_data(code: str) -> str:
    """Replace markup placed in string-typed data fields with a placeholder string.

    Triggers on object-literal keys ``label``, ``title``, ``subtitle`` and
    ``footer`` whose value is an element (``<span>X</span>``, ``<Icon />``,
    ``<>...</>``, optionally parenthesised). ``title: <span>X</span>`` becomes
    ``title: "Title"``. The whole element is replaced, nested children
    included. JSX props (``title={...}``) and unclosed elements are left alone.
    """
    parts: List[str] = []
    last = 0
    for m in _MARKUP_IN_DATA_RE.finditer(code):
        if m.start() < last:
            continue
        end = _element_end(code, m.end())
        if end < 0:
            continue
        if m.group("paren"):
            closing = _CLOSE_PAREN_RE.match(code, end)
            if not closing:
                continue
            end = closing.end()
        key = m.group("key")
        placeholder = FIELD_PLACEHOLDERS[key.strip("'\"")]
        parts.append(code[last:m.start()])
        parts.append(f'{m.group("lead")}{key}{m.group("sep")}"{placeholder}"')
        last = end
    parts.append(code[last:])
    return "".join(parts)


RULES: Tuple[Tuple[str, Callable[[str], str]], ...] = (
    ("strip_code_fences", strip_code_fences),
    ("rewrite_react_imports", rewrite_react_imports),
    ("rewrite_library_imports", rewrite_library_imports),
    ("ensure_default_export", ensure_default_export),
    ("repair_markup_in_data", repair_markup_in_data),
)


def sanitize(code: str) -> str:
    out = code or ""
    for name, rule in RULES:
        fixed = rule(out)
        if fixed != out:
            log.debug("sanitize: rule=%s changed %d -> %d chars", name, len(out), len(fixed))
        out = fixed
    # dropped import lines can leave blank lines at the edges
    return out.strip()
