import json
from pathlib import Path

from click.testing import CliRunner
from devtools import pprint

from typelens.cli import main

SAMPLES = Path(__file__).parent / "samples"


def _invoke(*args):
    runner = CliRunner()
    return runner.invoke(main, ["resolve", *map(str, args)])


def test_resolve_component():
    result = _invoke(SAMPLES / "button.tsx", "Button", "--extra", SAMPLES / "theme.ts")

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)

    #pprint(data)

    assert data["kind"] == "Component"
    assert data["name"] == "Button"
    assert data["filePath"] == "button.tsx"
    assert data["description"] == "A clickable button."
    assert data["tags"] == [{"tagName": "example", "text": '<Button label="Save" />'}]

    (signature,) = data["signatures"]
    assert signature["returnType"] == "JSX.Element"
    parameter = signature["parameter"]
    assert parameter["defaultValue"] == {"theme": "light", "size": "md"}

    props = {p["name"]: p for p in parameter["properties"]}
    assert list(props) == ["label", "theme", "size", "onClick"]
    assert props["label"]["description"] == "Visible label."
    assert props["theme"]["kind"] == "Union"
    assert props["theme"]["type"] == "Theme"
    assert props["theme"]["defaultValue"] == "light"
    assert props["theme"]["filePath"] == "button.tsx"
    assert [m["value"] for m in props["size"]["members"]] == ["sm", "md", "lg"]
    assert props["onClick"]["kind"] == "Function"


def test_resolve_type_alias():
    result = _invoke(SAMPLES / "theme.ts", "Theme")

    assert result.exit_code == 0, result.output
    data = json.loads(result.stdout)
    assert data["kind"] == "Union"
    assert data["description"] == "Visual theme of a component."
    assert data["filePath"] == "theme.ts"


def test_missing_declaration_fails():
    result = _invoke(SAMPLES / "theme.ts", "Missing")

    assert result.exit_code == 1
    assert "Missing" in result.output


def test_missing_file_fails():
    result = _invoke(SAMPLES / "nope.ts", "Theme")

    assert result.exit_code == 2
