from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlsplit

from jinja2 import Environment, FileSystemLoader, select_autoescape
from markupsafe import Markup
from pydantic import BaseModel

from uigen.components import ALLOWED_COMPONENTS
from uigen.errors import CompileError
from uigen.sanitizer import DEFAULT_COMPONENT_NAME, sanitize

log = logging.getLogger(__name__)

TEMPLATES_DIR = Path(os.getenv("UIGEN_TEMPLATES_DIR", str(Path(__file__).resolve().parent / "templates")))

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html", "xml"]),
    enable_async=False,
)

REACT_URL = os.getenv("PREVIEW_REACT_URL", "https://unpkg.com/react@18/umd/react.production.min.js")
REACT_DOM_URL = os.getenv("PREVIEW_REACT_DOM_URL", "https://unpkg.com/react-dom@18/umd/react-dom.production.min.js")
BABEL_URL = os.getenv("PREVIEW_BABEL_URL", "https://unpkg.com/@babel/standalone@7/babel.min.js")
RECHARTS_URL = os.getenv("PREVIEW_RECHARTS_URL", "https://unpkg.com/recharts@2/umd/Recharts.js")
PROP_TYPES_URL = os.getenv("PREVIEW_PROP_TYPES_URL", "https://unpkg.com/prop-types@15/prop-types.min.js")
TAILWIND_URL = os.getenv("PREVIEW_TAILWIND_URL", "https://cdn.tailwindcss.com")

# Parameters the generated code is invoked with. Only the first two receive a
# value; the rest shadow host globals so the code cannot name them directly.
FACTORY_PARAMS: List[str] = ["React", "ComponentLibrary"]
SHADOWED_GLOBALS: List[str] = [
    "window",
    "self",
    "globalThis",
    "parent",
    "top",
    "opener",
    "frames",
    "localStorage",
    "sessionStorage",
    "indexedDB",
    "fetch",
    "XMLHttpRequest",
    "WebSocket",
]

_EXPORT_DEFAULT_FUNCTION_RE = re.compile(r"\bexport\s+default\s+(async\s+)?function\b\s*(\*?\s*)([A-Za-z_$][\w$]*)?")
_EXPORT_DEFAULT_CLASS_RE = re.compile(r"\bexport\s+default\s+class\b\s*([A-Za-z_$][\w$]*)?")
_EXPORT_DEFAULT_NAME_RE = re.compile(r"^[ \t]*export\s+default\s+([A-Za-z_$][\w$]*)\s*;?[ \t]*$", re.MULTILINE)
_EXPORT_DEFAULT_EXPR_RE = re.compile(r"\bexport\s+default\s+")
_NAMED_EXPORT_RE = re.compile(r"^([ \t]*)export\s+(?=(?:const|let|var|function|class|async)\b)", re.MULTILINE)
_EXPORT_LIST_RE = re.compile(r"^[ \t]*export\s*\{[^}]*\}\s*(?:from\s*['\"][^'\"]*['\"])?\s*;?[ \t]*$", re.MULTILINE)


DEFAULT_EXPORT_BINDING = "__defaultExport"


def _unused_identifier(src: str, base: str) -> str:
    name = base
    n = 1
    while re.search(rf"(?<![\w$]){re.escape(name)}(?![\w$])", src):
        name = f"{base}{n}"
        n += 1
    return name


class ComponentFactory(BaseModel):
    """Source for ``new Function(*params, body)``; calling it returns the component."""

    name: str
    params: List[str]
    body: str


def build_component_factory(code: str) -> ComponentFactory:
    """Turn sanitized module source into a function body that returns its default export.

    Handles ``export default function Name``, ``export default class Name``,
    ``export default Name;``, anonymous functions and classes (named
    GeneratedUI) and other expressions (bound to ``__defaultExport``). A name
    the code already uses gets a numeric suffix. Other ``export`` keywords are
    stripped since a function body cannot contain them.
    """
    src = code or ""
    name: Optional[str] = None

    m = _EXPORT_DEFAULT_FUNCTION_RE.search(src)
    if m:
        name = m.group(3) or _unused_identifier(src, DEFAULT_COMPONENT_NAME)
        replacement = f"{m.group(1) or ''}function {m.group(2) or ''}{name}"
        src = src[: m.start()] + replacement + src[m.end():]
    else:
        m = _EXPORT_DEFAULT_CLASS_RE.search(src)
        if m:
            name = m.group(1) or _unused_identifier(src, DEFAULT_COMPONENT_NAME)
            src = src[: m.start()] + f"class {name}" + src[m.end():]
        else:
            m = _EXPORT_DEFAULT_NAME_RE.search(src)
            if m:
                name = m.group(1)
                src = src[: m.start()] + src[m.end():]
            else:
                m = _EXPORT_DEFAULT_EXPR_RE.search(src)
                if m:
                    # export default React.memo(GeneratedUI) must not redeclare GeneratedUI
                    name = _unused_identifier(src, DEFAULT_EXPORT_BINDING)
                    src = src[: m.start()] + f"const {name} = " + src[m.end():]

    if name is None:
        raise CompileError("No default export found: the code must export a component")

    src = _NAMED_EXPORT_RE.sub(r"\1", src)
    src = _EXPORT_LIST_RE.sub("", src)
    body = src.rstrip() + f"\n\nreturn {name};\n"
    return ComponentFactory(name=name, params=list(FACTORY_PARAMS), body=body)


def _script_json(value: object) -> Markup:
    """JSON for inline <script>: no raw '<', '>' or '&' so '</script>' cannot close the tag."""
    raw = json.dumps(value)
    raw = raw.replace("<", "\\u003c").replace(">", "\\u003e").replace("&", "\\u0026")
    return Markup(raw)


def _origin(url: str) -> str:
    parts = urlsplit(url)
    if not parts.scheme or not parts.netloc:
        return ""
    return f"{parts.scheme}://{parts.netloc}"


def content_security_policy() -> str:
    origins = sorted({o for o in map(_origin, (REACT_URL, REACT_DOM_URL, BABEL_URL, RECHARTS_URL, PROP_TYPES_URL, TAILWIND_URL)) if o})
    script_src = " ".join(["'unsafe-inline'", "'unsafe-eval'", *origins])
    return (
        "default-src 'none'; "
        f"script-src {script_src}; "
        "style-src 'unsafe-inline'; "
        "img-src data:; "
        "font-src 'none'; "
        "connect-src 'none'; "
        "form-action 'none'; "
        "base-uri 'none'"
    )


def _registry_source() -> Markup:
    source, _, _ = _env.loader.get_source(_env, "partials/component_library.js")
    return Markup(source)


def render_host_page() -> str:
    tpl = _env.get_template("index.html")
    return tpl.render(components=ALLOWED_COMPONENTS)


def render_preview_document(code: str, *, title: str = "Preview") -> str:
    """
    Build the self-contained HTML document that renders ``code`` in a sandboxed iframe.

    The code is sanitized, turned into a factory body and compiled by Babel
    inside the document. The component registry is created in the document and
    passed to the factory as an argument. Compile and render failures are shown
    as text in the document; a CompileError raised here produces a document
    that only displays the error.
    """
    error: Optional[str] = None
    factory: Optional[ComponentFactory] = None
    try:
        factory = build_component_factory(sanitize(code))
    except CompileError as exc:
        log.info("preview.render: compile error=%s", exc)
        error = str(exc)

    tpl = _env.get_template("preview.html")
    return tpl.render(
        title=title,
        csp=content_security_policy(),
        error=error,
        react_url=REACT_URL,
        react_dom_url=REACT_DOM_URL,
        babel_url=BABEL_URL,
        prop_types_url=PROP_TYPES_URL,
        recharts_url=RECHARTS_URL,
        tailwind_url=TAILWIND_URL,
        registry_js=_registry_source(),
        body_json=_script_json(factory.body if factory else ""),
        params_json=_script_json((factory.params if factory else FACTORY_PARAMS) + SHADOWED_GLOBALS),
        component_name_json=_script_json(factory.name if factory else ""),
    )
