from __future__ import annotations

import re
from typing import Dict, Iterable, List

from uigen.components import ALLOWED_COMPONENTS, FRAGMENT_TAGS, is_allowed
from uigen.errors import DisallowedComponentError

LIBRARY_NAMESPACE = "ComponentLibrary"

# Any capitalised JSX opening tag, including member tags such as <React.Fragment>.
# Type arguments (useState<User>) follow an identifier and are skipped.
_TAG_RE = re.compile(r"(?<![\w$.])<([A-Z][\w$]*(?:\.[A-Za-z_$][\w$]*)*)(?=[\s>/])")
# const UI = ComponentLibrary; (sanitized) or import * as UI from './ComponentLibrary' (raw)
_NAMESPACE_ALIAS_RES = (
    re.compile(r"\b(?:const|let|var)\s+([A-Za-z_$][\w$]*)\s*=\s*ComponentLibrary\s*;"),
    re.compile(r"\bimport\s+(?:\*\s+as\s+)?([A-Za-z_$][\w$]*)\s+from\s*['\"][^'\"\n]*ComponentLibrary['\"]"),
)


def library_aliases(code: str) -> List[str]:
    """Names bound to the whole component registry, ``ComponentLibrary`` first."""
    aliases = [LIBRARY_NAMESPACE]
    for pattern in _NAMESPACE_ALIAS_RES:
        for alias in pattern.findall(code or ""):
            if alias not in aliases:
                aliases.append(alias)
    return aliases


def _usage_pattern(name: str, aliases: List[str]) -> re.Pattern[str]:
    prefix = "|".join(re.escape(a) for a in aliases)
    return re.compile(rf"<(?:(?:{prefix})\.)?{name}(?=[\s>/])")


def extract_component_usage(code: str) -> List[str]:
    """Return the library components whose opening tag appears in ``code``.

    ``<UI.Button>`` counts as Button when ``UI`` is bound to the registry.
    This is a lexical check, not a parse: a tag inside a string literal or a
    comment counts as usage. The result is always a subset of
    ALLOWED_COMPONENTS, in library order.
    """
    code = code or ""
    aliases = library_aliases(code)
    return [name for name in ALLOWED_COMPONENTS if _usage_pattern(name, aliases).search(code)]


def scan_component_tags(code: str) -> List[str]:
    """Return every capitalised tag name opened in ``code``, first-seen order.

    Member tags on a registry alias are reported by component name, so
    ``<UI.Modal>`` is ``Modal`` once ``const UI = ComponentLibrary;`` is seen.
    """
    aliases = library_aliases(code)
    seen: List[str] = []
    for name in _TAG_RE.findall(code or ""):
        head, _, member = name.partition(".")
        if member and "." not in member and head in aliases:
            name = member
        if name in FRAGMENT_TAGS or name in seen:
            continue
        seen.append(name)
    return seen


def collect_errors(usage: Iterable[str]) -> List[Dict[str, str]]:
    """
    Return a list of {"path": "...", "message": "..."} error dicts, one per
    component outside the fixed library.
    """
    errors: List[Dict[str, str]] = []
    for idx, name in enumerate(usage):
        if not is_allowed(name):
            errors.append({
                "path": f"componentUsage[{idx}]",
                "message": f"component '{name}' is not in the component library",
            })
    return errors


def validate_components(usage: Iterable[str]) -> None:
    """
    Raise DisallowedComponentError if any name is outside the fixed set;
    otherwise return None.
    """
    names = list(usage)
    bad = [name for name in names if not is_allowed(name)]
    if bad:
        raise DisallowedComponentError(bad, ALLOWED_COMPONENTS)
