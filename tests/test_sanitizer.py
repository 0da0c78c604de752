import pytest

from uigen.sanitizer import (
    RULES,
    ensure_default_export,
    repair_markup_in_data,
    rewrite_library_imports,
    rewrite_react_imports,
    sanitize,
    strip_code_fences,
)


LOGIN_FORM_RAW = """```tsx
import React, { useState } from 'react';
import { Button, Card, Input } from './ComponentLibrary';

function GeneratedUI() {
  const [email, setEmail] = useState('');
  const [password, setPassword] = useState('');
  return (
    <Card title="Sign in" subtitle="Welcome back">
      <Input label="Email" type="email" value={email} onChange={(e) => setEmail(e.target.value)} />
      <Input label="Password" type="password" value={password} onChange={(e) => setPassword(e.target.value)} />
      <Button variant="primary" onClick={() => {}}>Log in</Button>
    </Card>
  );
}
```"""


def test_strip_code_fences_with_language_tag():
    assert strip_code_fences("```tsx\nconst a = 1;\n```") == "const a = 1;"


def test_strip_code_fences_extracts_block_from_prose():
    text = "Here is your component:\n```jsx\nconst a = 1;\n```\nLet me know if you need changes."
    assert strip_code_fences(text) == "const a = 1;"


def test_strip_code_fences_leaves_plain_code():
    assert strip_code_fences("  const a = 1;\n") == "const a = 1;"


def test_strip_code_fences_drops_commentary_after_closing_fence():
    text = "```jsx\nconst Page = () => <Card />;\nexport default Page;\n```\n\nThis component renders a card."
    assert strip_code_fences(text) == "const Page = () => <Card />;\nexport default Page;"
    assert sanitize(text) == "const Page = () => <Card />;\nexport default Page;"


def test_strip_code_fences_unclosed_leading_fence():
    assert strip_code_fences("```tsx\nconst a = 1;") == "const a = 1;"


def test_react_default_and_namespace_imports_are_dropped():
    code = "import React from 'react';\nimport * as React from \"react\";\nconst x = 1;"
    assert rewrite_react_imports(code) == "const x = 1;"


def test_react_named_imports_become_destructuring():
    code = "import { useState, useEffect } from 'react';"
    assert rewrite_react_imports(code) == "const { useState, useEffect } = React;"


def test_react_combined_and_multiline_imports():
    code = "import React, {\n  useState,\n  useMemo as memo,\n} from 'react';\nconst y = 2;"
    out = rewrite_react_imports(code)
    assert out.startswith("const { useState, useMemo: memo } = React;")
    assert "import" not in out


def test_library_named_imports_any_path():
    code = "import { Button, Card as Box } from '@/components/ComponentLibrary';"
    assert rewrite_library_imports(code) == "const { Button, Card: Box } = ComponentLibrary;"


def test_library_namespace_imports():
    assert rewrite_library_imports("import * as UI from './ComponentLibrary';") == "const UI = ComponentLibrary;"
    assert rewrite_library_imports("import * as ComponentLibrary from './ComponentLibrary';") == ""


def test_library_imports_from_other_modules_untouched():
    code = "import { format } from 'date-fns';"
    assert rewrite_library_imports(code) == code


def test_ensure_default_export_keeps_existing():
    code = "function GeneratedUI() { return null; }\nexport default GeneratedUI;"
    assert ensure_default_export(code) == code


def test_ensure_default_export_uses_first_component_declaration():
    code = "const COLORS = ['red'];\nconst LoginForm = () => null;\nfunction Helper() {}"
    assert ensure_default_export(code).endswith("\n\nexport default LoginForm;")


def test_ensure_default_export_prefers_generated_ui():
    code = "const Header = () => null;\nfunction GeneratedUI() { return null; }"
    assert ensure_default_export(code).endswith("export default GeneratedUI;")


def test_ensure_default_export_falls_back_to_generated_ui():
    assert ensure_default_export("const x = 1;").endswith("export default GeneratedUI;")


def test_markup_in_title_becomes_placeholder():
    assert repair_markup_in_data("title: <span>X</span>") == 'title: "Title"'


def test_markup_in_items_is_repaired():
    code = (
        "const items = [\n"
        "  { label: <b>Home</b>, id: 'home' },\n"
        "  { id: 'x', label: <Icon name=\"x\" /> },\n"
        "];"
    )
    out = repair_markup_in_data(code)
    assert out.count('label: "Item"') == 2
    assert "<b>" not in out and "<Icon" not in out


def test_markup_fragment_and_parenthesised_values():
    code = "const card = {\n  footer: <>Done</>,\n  subtitle: (\n    <em>Sub</em>\n  ),\n};"
    out = repair_markup_in_data(code)
    assert 'footer: "Footer"' in out
    assert 'subtitle: "Subtitle"' in out
    assert "<" not in out


def test_nested_markup_of_the_same_tag_is_replaced_whole():
    assert repair_markup_in_data("label: <span><span>x</span></span>") == 'label: "Item"'
    code = "const nav = [{ title: <div><div>A</div><div>B</div></div>, id: 1 }];"
    assert repair_markup_in_data(code) == 'const nav = [{ title: "Title", id: 1 }];'


def test_unclosed_markup_is_left_alone():
    code = "title: <span>X"
    assert repair_markup_in_data(code) == code


def test_jsx_props_are_not_touched():
    code = '<Card title={<b>x</b>} subtitle="plain">body</Card>'
    assert repair_markup_in_data(code) == code


def test_rules_are_listed_in_order():
    assert [name for name, _ in RULES] == [
        "strip_code_fences",
        "rewrite_react_imports",
        "rewrite_library_imports",
        "ensure_default_export",
        "repair_markup_in_data",
    ]


def test_sanitize_login_form():
    out = sanitize(LOGIN_FORM_RAW)
    assert "```" not in out
    assert "import" not in out
    assert out.startswith("const { useState } = React;")
    assert "const { Button, Card, Input } = ComponentLibrary;" in out
    assert out.count("export default") == 1
    assert out.endswith("export default GeneratedUI;")


@pytest.mark.parametrize(
    "raw",
    [
        LOGIN_FORM_RAW,
        "Sure!\n```jsx\nimport React from 'react';\n\nexport default function App() { return <Button>Hi</Button>; }\n```",
        "const items = [{ title: <span>X</span> }];\nconst Page = () => <Card title=\"t\" />;",
        "import * as UI from './ComponentLibrary';\nconst Page = () => <UI.Button />;",
        "const nav = [{ label: <span><span>x</span></span> }];\nconst Page = () => <Navbar />;",
        "```jsx\nconst Page = () => <Card />;\n```\nThis renders a card.",
        "",
    ],
)
def test_sanitize_is_idempotent(raw):
    once = sanitize(raw)
    assert sanitize(once) == once
