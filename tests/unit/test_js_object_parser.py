"""
Unit tests for the JavaScript / TypeScript object-literal parser.

Only string and template literals that are the whole
value of an object property; everything else in the module is left alone
and must come back byte-for-byte.
"""
import pytest

from speranto.core.exceptions import ParseError
from speranto.core.parsers.js_object import JsObjectParser, escape_string, escape_template


JS_MODULE = """// Site strings
export default {
  nav: {
    home: "Home",
    about: 'About us', // shown in the header
  },
  title: `Welcome`,
};
"""


def literals(source, typescript=False):
    tree = JsObjectParser(typescript=typescript).parse(source)
    return [(lit.identity, lit.value) for lit in tree.literals]


class TestJsExtraction:
    """Which literals are found."""

    def test_default_export(self):
        assert literals(JS_MODULE) == [
            ("nav.home", "Home"),
            ("nav.about", "About us"),
            ("title", "Welcome"),
        ]

    def test_const_object(self):
        source = 'const messages = { greeting: "Hello" };\nexport default messages;\n'
        assert literals(source) == [("greeting", "Hello")]

    def test_module_exports(self):
        source = 'module.exports = {\n  "quoted-key": "Value",\n  42: "Number key",\n};\n'
        assert literals(source) == [("quoted-key", "Value"), ("42", "Number key")]

    def test_expressions_are_skipped(self):
        source = (
            "export default {\n"
            '  joined: "a" + suffix,\n'
            '  picked: flag ? "yes" : "no",\n'
            '  called: t("key"),\n'
            '  kept: "plain",\n'
            "};\n"
        )
        assert literals(source) == [("kept", "plain")]

    def test_template_with_substitution_is_skipped(self):
        source = "export default {\n  hi: `Hello ${name}`,\n  bye: `Goodbye`\n};\n"
        assert literals(source) == [("bye", "Goodbye")]

    def test_array_elements_are_skipped(self):
        source = 'export default { tags: ["a", "b"], label: "Tags" };\n'
        assert literals(source) == [("label", "Tags")]

    def test_objects_inside_arrays(self):
        source = 'export default {\n  items: [\n    { label: "One" },\n    { label: "Two" },\n  ],\n};\n'
        assert literals(source) == [("items.0.label", "One"), ("items.1.label", "Two")]

    def test_function_bodies_are_skipped(self):
        source = (
            "function greet(name) {\n"
            '  const text = "Hello";\n'
            "  return text + name;\n"
            "}\n"
            'export default { greeting: "Hi" };\n'
        )
        assert literals(source) == [("greeting", "Hi")]

    def test_comments_and_regex(self):
        source = (
            "/* header: 'not a value' */\n"
            "const re = /\\{[a-z]+\\}/g;\n"
            "export default {\n"
            "  // note: 'ignored'\n"
            '  text: "Real",\n'
            "};\n"
        )
        assert literals(source) == [("text", "Real")]

    def test_escapes_are_decoded(self):
        source = 'export default {\n  quote: "Say \\"hi\\"\\n",\n  unicode: "caf\\u00e9 \\u{1F600}",\n};\n'
        assert literals(source) == [
            ("quote", 'Say "hi"\n'),
            ("unicode", "café \U0001F600"),
        ]

    def test_surrogate_pair_escape(self):
        source = 'export default { smile: "\\ud83d\\ude00" };\n'
        assert literals(source) == [("smile", "\U0001F600")]


class TestTypeScript:
    """Type-level braces never yield literals."""

    def test_annotated_const(self):
        source = 'const messages: Record<string, string> = {\n  hello: "Hi",\n};\nexport default messages;\n'
        assert literals(source, typescript=True) == [("hello", "Hi")]

    def test_interface_and_type_alias(self):
        source = (
            "interface Messages {\n"
            "  hello: string;\n"
            "}\n"
            "type Labels = { ok: 'OK' | 'Fine' };\n"
            'export const messages: Messages = { hello: "Hi" };\n'
        )
        assert literals(source, typescript=True) == [("hello", "Hi")]

    def test_satisfies_clause(self):
        source = 'export default {\n  save: "Save",\n} satisfies Record<string, string>;\n'
        assert literals(source, typescript=True) == [("save", "Save")]

    def test_as_const(self):
        source = 'export const labels = { cancel: "Cancel" } as const;\n'
        assert literals(source, typescript=True) == [("cancel", "Cancel")]

    def test_annotation_without_semicolon(self):
        source = "let v: string\nexport default { a: 'x' }\n"
        assert literals(source, typescript=True) == [("a", "x")]

    def test_type_assertion_without_semicolon(self):
        source = "const x = a as unknown as { k: string }\nexport default { a: 'x' }\n"
        assert literals(source, typescript=True) == [("a", "x")]

    def test_statements_without_semicolons(self):
        source = (
            "import type { Labels } from './types'\n"
            "const fallback: Labels = { ok: 'OK' }\n"
            "export default {\n"
            "  ...fallback,\n"
            "  cancel: 'Cancel',\n"
            "} satisfies Labels\n"
        )
        assert literals(source, typescript=True) == [("ok", "OK"), ("cancel", "Cancel")]


class TestJsErrors:

    def test_unterminated_string(self):
        with pytest.raises(ParseError) as exc_info:
            JsObjectParser().parse('export default { a: "oops };\n')
        assert exc_info.value.context["format"] == "javascript"
        assert exc_info.value.context["line"] == 1

    def test_unclosed_object(self):
        with pytest.raises(ParseError):
            JsObjectParser(typescript=True).parse('export default {\n  a: "x",\n')

    def test_unbalanced_brace(self):
        with pytest.raises(ParseError):
            JsObjectParser().parse("}\n")


class TestJsUnitsAndReconstruct:

    def test_units_group_by_first_key(self):
        parser = JsObjectParser()
        units = parser.extract_units(parser.parse(JS_MODULE))
        assert [u.key for u in units] == ["nav", "_root"]
        assert units[0].identities() == ["nav.home", "nav.about"]
        assert [m.path for m in units[0].members] == [("string_0",), ("string_1",)]
        assert units[1].members[0].path == ("template_2",)

    def test_reconstruct_keeps_formatting(self):
        parser = JsObjectParser()
        tree = parser.parse(JS_MODULE)
        new = parser.reconstruct(tree, {
            ("string_0",): "Inicio",
            ("string_1",): "Sobre 'nosotros'",
            ("template_2",): "Bienvenido `amigo` ${x}",
        })
        assert parser.serialize(new) == """// Site strings
export default {
  nav: {
    home: "Inicio",
    about: 'Sobre \\'nosotros\\'', // shown in the header
  },
  title: `Bienvenido \\`amigo\\` \\${x}`,
};
"""
        assert [lit.value for lit in new.literals] == ["Inicio", "Sobre 'nosotros'", "Bienvenido `amigo` ${x}"]

    def test_reconstruct_with_nothing_changed(self):
        parser = JsObjectParser()
        tree = parser.parse(JS_MODULE)
        assert parser.reconstruct(tree, {}) is tree
        assert parser.serialize(parser.reconstruct(tree, {("string_0",): "Home"})) == JS_MODULE

    def test_reconstruct_after_non_ascii_text(self):
        """Offsets stay right when multi-byte characters precede a literal."""
        parser = JsObjectParser(typescript=True)
        tree = parser.parse("// café ☕\nexport default { a: 'Tea', b: 'Milk' }\n")
        new = parser.reconstruct(tree, {("string_0",): "Thé", ("string_1",): "Lait"})
        assert parser.serialize(new) == "// café ☕\nexport default { a: 'Thé', b: 'Lait' }\n"

    def test_escape_string(self):
        assert escape_string('a"b\\c\nd', '"') == '"a\\"b\\\\c\\nd"'
        assert escape_string("it's", "'") == "'it\\'s'"
        assert escape_string("line\u2028sep", '"') == '"line\\u2028sep"'

    def test_escape_template(self):
        assert escape_template("a`b${c}") == "`a\\`b\\${c}`"

    def test_extensions(self):
        assert JsObjectParser().handles("locales/en.mjs")
        assert JsObjectParser(typescript=True).handles("locales/en.ts")
        assert not JsObjectParser().handles("component.jsx")
