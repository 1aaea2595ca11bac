"""Tests for the tolerant HTML / JSX markup parsers."""

from testweaver.core.ir import Language
from testweaver.core.markup import (
    CommentKind,
    MarkupDocument,
    parse_markup,
    static_expression_value,
)


def _tags(document: MarkupDocument) -> list[str]:
    return [element.tag for element in document.iter_elements()]


class TestStaticExpressionValue:
    def test_double_quoted(self) -> None:
        assert static_expression_value('"click"') == "click"

    def test_single_quoted(self) -> None:
        assert static_expression_value("'type:it\\'s'") == "type:it's"

    def test_template_without_substitution(self) -> None:
        assert static_expression_value("`visible`") == "visible"

    def test_dynamic_expressions(self) -> None:
        assert static_expression_value("step") is None
        assert static_expression_value("`type:${name}`") is None
        assert static_expression_value('"a" + "b"') is None


class TestJsxParsing:
    def test_elements_and_positions(self) -> None:
        source = 'const x = 1;\nfunction A() {\n  return <div id="a">\n    <span/>\n  </div>;\n}\n'
        document = parse_markup(source, "A.tsx")
        assert _tags(document) == ["div", "span"]
        div = next(document.iter_elements())
        assert (div.line, div.column) == (3, 10)
        assert div.get("id") == "a"
        assert document.defects == []

    def test_expression_container_values(self) -> None:
        source = 'const el = <b a={"x"} b={`y`} c={value} d e=\'q\' />;'
        element = next(parse_markup(source, "B.jsx").iter_elements())
        assert element.get("a") == "x"
        assert element.get("b") == "y"
        assert element.get("c") is None
        assert element.attribute("c").dynamic
        assert "d" in element.attributes and element.get("d") is None
        assert element.get("e") == "q"

    def test_entities_in_quoted_values(self) -> None:
        element = next(parse_markup('x = <i t="a &amp; b" />', "C.tsx").iter_elements())
        assert element.get("t") == "a & b"

    def test_first_attribute_wins(self) -> None:
        element = next(parse_markup('x = <i t="one" t="two" />', "C.tsx").iter_elements())
        assert element.get("t") == "one"

    def test_comparisons_and_generics_are_not_markup(self) -> None:
        source = (
            "const a = b < c;\n"
            "const f = <T,>(v: T) => v;\n"
            "const s = useState<string | null>(null);\n"
            "if (a<b && c > d) {}\n"
        )
        document = parse_markup(source, "D.tsx")
        assert _tags(document) == []

    def test_generic_type_syntax_is_not_markup(self) -> None:
        source = (
            "type Mapper = <T>(value: T) => T;\n"
            "type Factory = <T>() => T;\n"
            "interface Api {\n"
            "  fn: <T>(x: T) => void;\n"
            "  get: <K extends string>(key: K) => K;\n"
            "}\n"
            "const pair = <A, B>(a: A, b: B) => [a, b];\n"
            "// after the types\n"
        )
        document = parse_markup(source, "Types.tsx")
        assert _tags(document) == []
        assert document.defects == []
        assert [c.text for c in document.comments] == [" after the types"]

    def test_parenthesised_text_is_still_markup(self) -> None:
        document = parse_markup("const a = <b>(note)</b>;\n", "N.tsx")
        assert _tags(document) == ["b"]
        assert document.defects == []

    def test_strings_regex_and_templates_are_skipped(self) -> None:
        source = (
            'const s = "<div data-test-context=\\"no\\">";\n'
            "const r = /<span>/g;\n"
            "const t = `<p>${'<em>'}</p>`;\n"
            "const ok = <section />;\n"
        )
        assert _tags(parse_markup(source, "E.tsx")) == ["section"]

    def test_nested_jsx_in_expressions(self) -> None:
        source = (
            "return (\n"
            "  <ul>\n"
            "    {items.map((i) => <li key={i}>{i}</li>)}\n"
            "    {show && <p>hi</p>}\n"
            "    {ok ? <b /> : <i />}\n"
            "  </ul>\n"
            ");"
        )
        document = parse_markup(source, "F.tsx")
        ul = next(document.iter_elements())
        assert [c.tag for c in ul.children] == ["li", "p", "b", "i"]

    def test_fragments_and_member_tags(self) -> None:
        source = "x = <><Foo.Bar a=\"1\" /><my-el /></>;"
        assert _tags(parse_markup(source, "G.tsx")) == ["", "Foo.Bar", "my-el"]

    def test_comments_recorded(self) -> None:
        source = "// one\n/* two\n three */\nx = <div>{/* three */}</div>;"
        document = parse_markup(source, "H.tsx")
        kinds = [(c.kind, c.line, c.end_line) for c in document.comments]
        assert kinds == [
            (CommentKind.LINE, 1, 1),
            (CommentKind.BLOCK, 2, 3),
            (CommentKind.BLOCK, 4, 4),
        ]
        assert document.comments[0].text == " one"

    def test_descendants_exclude_self(self) -> None:
        document = parse_markup("x = <a><b><c /></b><d /></a>;", "I.tsx")
        a = next(document.iter_elements())
        assert [e.tag for e in a.iter_descendants()] == ["b", "c", "d"]


class TestJsxRecovery:
    def test_mismatched_closing_tag(self) -> None:
        document = parse_markup("x = <a><b></a>;", "J.tsx")
        assert _tags(document) == ["a", "b"]
        assert len(document.defects) == 1
        assert "closed implicitly" in document.defects[0].message

    def test_stray_closing_tag(self) -> None:
        document = parse_markup("x = <a></z></a>;", "K.tsx")
        assert _tags(document) == ["a"]
        assert "Unexpected closing tag </z>" in document.defects[0].message

    def test_unclosed_element_keeps_partial_tree(self) -> None:
        document = parse_markup('x = <a data-test-context="c">\n  <b data-test-id="x" />\n', "L.tsx")
        assert _tags(document) == ["a", "b"]
        assert document.defects[0].message == "Unclosed <a> at end of file"
        assert document.defects[0].line == 1

    def test_unterminated_expression(self) -> None:
        document = parse_markup("x = <a b={foo(", "M.tsx")
        assert any("Unterminated" in d.message for d in document.defects)


class TestHtmlParsing:
    def test_positions_and_attributes(self) -> None:
        source = '<main>\n  <div data-test-context="x" hidden>\n  </div>\n</main>'
        document = parse_markup(source, "index.html")
        assert document.language == Language.HTML
        div = document.root.children[0].children[0]
        assert (div.line, div.column) == (2, 3)
        assert div.get("data-test-context") == "x"
        assert "hidden" in div.attributes

    def test_void_and_self_closing(self) -> None:
        document = parse_markup("<p><input><br/><span/></p>", "a.html")
        p = document.root.children[0]
        assert [c.tag for c in p.children] == ["input", "br", "span"]
        assert document.defects == []

    def test_optional_end_tags_are_not_defects(self) -> None:
        document = parse_markup("<ul><li>a<li>b</ul>", "b.html")
        assert document.defects == []

    def test_unexpected_closing_tag(self) -> None:
        document = parse_markup("<div></span></div>", "c.html")
        assert document.defects[0].message == "Unexpected closing tag </span>"

    def test_unclosed_at_end(self) -> None:
        document = parse_markup("<div><section>", "d.html")
        assert [d.message for d in document.defects] == [
            "Unclosed <div> at end of file",
            "Unclosed <section> at end of file",
        ]

    def test_html_comment(self) -> None:
        document = parse_markup("<div>\n<!-- a\nb -->\n</div>", "e.html")
        comment = document.comments[0]
        assert comment.kind == CommentKind.HTML
        assert (comment.line, comment.end_line) == (2, 3)

    def test_script_comments_in_vue(self) -> None:
        source = "<template><div /></template>\n<script>\n// hello\nconst a = 1;\n</script>\n"
        document = parse_markup(source, "X.vue")
        assert document.language == Language.VUE
        assert [(c.text, c.line) for c in document.comments] == [(" hello", 3)]

    def test_deeply_nested_script_is_a_defect(self) -> None:
        nested = "`${" * 2000 + "x" + "}`" * 2000
        source = f"<template><div /></template>\n<script>\nconst s = {nested};\n</script>\n"
        document = parse_markup(source, "Deep.vue")
        assert _tags(document) == ["template", "div", "script"]
        assert [d.message for d in document.defects] == [
            "Script nested too deeply; remaining input skipped"
        ]

    def test_svelte_brace_values(self) -> None:
        document = parse_markup('<b a={"click"} c={x}></b>', "Y.svelte")
        b = document.root.children[0]
        assert b.get("a") == "click"
        assert b.get("c") is None
        assert b.attribute("c").dynamic

    def test_language_override(self) -> None:
        document = parse_markup("<div></div>", "component.txt", Language.HTML)
        assert _tags(document) == ["div"]


class TestPlainTypeScript:
    def test_ts_files_build_no_elements(self) -> None:
        source = (
            "const id = <T>(x: T) => x;\n"
            "const input = <HTMLInputElement>document.getElementById('q');\n"
            "/* @test-context search */\n"
            "export const n = 1;\n"
        )
        document = parse_markup(source, "util.ts")
        assert document.language == Language.TS
        assert _tags(document) == []
        assert document.defects == []
        assert [(c.text, c.line) for c in document.comments] == [(" @test-context search ", 3)]

    def test_tsx_still_builds_elements(self) -> None:
        document = parse_markup("export const A = () => <div />;\n", "A.tsx")
        assert _tags(document) == ["div"]
