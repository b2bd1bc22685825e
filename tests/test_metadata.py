from textwrap import dedent

from typelens.metadata import SymbolMetadataProvider, parse_jsdoc
from typelens.oracle.typescript import TypeScriptOracle


def _provider(sources):
    oracle = TypeScriptOracle()
    for path, text in sources.items():
        oracle.add_source(path, dedent(text))
    return oracle, SymbolMetadataProvider(oracle)


def test_parse_jsdoc_description_and_tags():
    comment = dedent(
        """\
        /**
         * Renders a button.
         *
         * Supports {@link Theme} values.
         * @param props the props
         *   spanning two lines
         * @deprecated
         * @see-also Other
         */"""
    )

    description, tags = parse_jsdoc(comment)

    assert description == "Renders a button.\n\nSupports {@link Theme} values."
    assert [(t.tag_name, t.text) for t in tags] == [
        ("param", "props the props\nspanning two lines"),
        ("deprecated", None),
        ("see-also", "Other"),
    ]


def test_parse_jsdoc_single_line():
    assert parse_jsdoc("/** Just text. */") == ("Just text.", [])


def test_parse_jsdoc_only_tags():
    description, tags = parse_jsdoc("/** @internal */")

    assert description is None
    assert [t.tag_name for t in tags] == ["internal"]


def test_parse_jsdoc_empty():
    assert parse_jsdoc(None) == (None, [])
    assert parse_jsdoc("") == (None, [])


def test_symbol_metadata():
    oracle, provider = _provider(
        {
            "src/props.ts": """
            import { Theme } from "ui";

            /** Button props. */
            export interface Props {
              readonly id: string;
              theme?: Theme;
            }
            """,
            "node_modules/ui/index.d.ts": "export type Theme = 'a' | 'b';",
        }
    )
    declaration = oracle.get_declaration_by_name("src/props.ts", "Props")
    props_type = oracle.get_type_of_declaration(declaration)

    metadata = provider.describe_symbol(oracle.get_symbol(props_type))
    assert metadata.name == "Props"
    assert metadata.file_path == "src/props.ts"
    assert metadata.position.start.line == 5
    assert metadata.description == "Button props."
    assert metadata.is_exported
    assert not metadata.is_in_node_modules
    assert not metadata.is_external

    identifier, theme = oracle.get_apparent_properties(props_type)
    assert provider.describe_symbol(identifier).is_readonly
    assert provider.describe_symbol(theme).is_optional

    theme_type = oracle.get_type_of_symbol(theme)
    theme_metadata = provider.describe_symbol(oracle.get_symbol(theme_type))
    assert theme_metadata.name == "Theme"
    assert theme_metadata.file_path == "node_modules/ui/index.d.ts"
    assert theme_metadata.is_in_node_modules
    assert theme_metadata.is_external


def test_anonymous_symbols_have_no_name():
    oracle, provider = _provider({"a.ts": "export const value = { a: 1 };"})
    declaration = oracle.get_declaration_by_name("a.ts", "value")
    value_type = oracle.get_type_of_declaration(declaration)

    metadata = provider.describe_symbol(oracle.get_symbol(value_type))

    assert metadata.name is None
    assert metadata.file_path == "a.ts"


def test_library_symbols_are_external():
    oracle, provider = _provider({"a.ts": "export type Later = Promise<string>;"})
    declaration = oracle.get_declaration_by_name("a.ts", "Later")
    later = oracle.get_type_of_declaration(declaration)

    metadata = provider.describe_symbol(oracle.get_symbol(later))

    assert metadata.name == "Promise"
    assert metadata.is_external
    assert not metadata.is_in_node_modules
    assert not metadata.is_exported
