import pytest

from uigen.components import ALLOWED_COMPONENTS
from uigen.errors import DisallowedComponentError
from uigen.validators import (
    collect_errors,
    extract_component_usage,
    scan_component_tags,
    validate_components,
)


def test_usage_is_library_ordered_subset():
    code = "<Chart data={d} /><Button>x</Button><Foo /><Button>y</Button>"
    assert extract_component_usage(code) == ["Button", "Chart"]


def test_usage_requires_tag_boundary():
    code = "<ButtonGroup><Cards></Cards></ButtonGroup>\n<Input\n  label=\"a\" />"
    assert extract_component_usage(code) == ["Input"]


def test_usage_is_lexical():
    # tags inside strings and comments still count
    code = "const s = '<Modal>';\n// <Table />"
    assert extract_component_usage(code) == ["Table", "Modal"]


@pytest.mark.parametrize(
    "code",
    [
        "",
        "<Card><Navbar title=\"x\" /></Card>",
        "".join(f"<{n} />" for n in ALLOWED_COMPONENTS),
        "<div><Sidebarx /></div>",
    ],
)
def test_usage_is_always_subset_of_library(code):
    usage = extract_component_usage(code)
    assert set(usage) <= set(ALLOWED_COMPONENTS)
    assert usage == [n for n in ALLOWED_COMPONENTS if n in usage]


def test_scan_finds_unknown_tags_in_order():
    code = "<Card><Foo /><Button /><Foo /><UI.Modal /></Card>"
    assert scan_component_tags(code) == ["Card", "Foo", "Button", "UI.Modal"]


def test_scan_ignores_fragments_and_type_arguments():
    code = "const [u, setU] = useState<User | null>(null);\n<React.Fragment><Fragment><Card /></Fragment></React.Fragment>"
    assert scan_component_tags(code) == ["Card"]


def test_validate_components_passes_for_library_names():
    assert validate_components(["Button", "Card"]) is None


def test_validate_components_fails_for_unknown_name():
    with pytest.raises(DisallowedComponentError) as ei:
        validate_components(["Button", "Foo"])
    assert ei.value.components == ["Foo"]
    assert str(ei.value).startswith("Invalid component used: Foo. Only allowed: Button, Card")


def test_collect_errors_paths():
    errors = collect_errors(["Card", "Foo", "div"])
    assert [e["path"] for e in errors] == ["componentUsage[1]", "componentUsage[2]"]
    assert "Foo" in errors[0]["message"]


def test_namespace_alias_members_are_library_components():
    code = "const UI = ComponentLibrary;\nconst Page = () => <UI.Card><UI.Button>Go</UI.Button><Other.Modal /></UI.Card>;"
    assert scan_component_tags(code) == ["Card", "Button", "Other.Modal"]
    assert extract_component_usage(code) == ["Button", "Card"]


def test_namespace_alias_from_raw_import():
    code = "import * as UI from './ComponentLibrary';\nconst Page = () => <UI.Table rows={[]} />;"
    assert scan_component_tags(code) == ["Table"]
    assert extract_component_usage(code) == ["Table"]
    assert validate_components(scan_component_tags(code)) is None


def test_namespace_alias_unknown_member_is_rejected():
    code = "const UI = ComponentLibrary;\n<UI.Foo />"
    assert collect_errors(scan_component_tags(code)) == [
        {"path": "componentUsage[0]", "message": "component 'Foo' is not in the component library"}
    ]
