import pytest

from conftest import make_tokens
from grammar_model import Symbol
from grammar_transform import reduce_grammar
from ll_analysis import ActionTable
from ll_parser import NoApplicableProductionError, ParseTree, PredictiveParser, Token, TokenMismatchError
from pascalmp import LexicalUnit
from visualization import (
    DOTGenerator, ErrorMessageFormatter, HTMLTableGenerator, LatexTreeGenerator,
    RuleTraceFormatter, VisualizationConfig, VisualizationGenerator, render_tree_text,
)


@pytest.fixture
def parsed(expression_grammar):
    tokens = make_tokens("T", "+", "T")
    tokens[0].value, tokens[2].value = "x", "y"
    parser = PredictiveParser(expression_grammar, tokens)
    return parser, parser.parse()


def test_action_table_html(expression_grammar):
    table = ActionTable(reduce_grammar(expression_grammar))
    html_output = HTMLTableGenerator().generate_action_table_html(table)
    assert '<table' in html_output
    assert "<th class=\"grammar-table-cell grammar-table-cell-primary\" scope=\"row\">E&#x27;&#x27;</th>" in html_output
    assert 'grammar-action-conflict">' not in html_output


def test_action_table_html_marks_conflicts(prefix_grammar):
    html_output = HTMLTableGenerator().generate_action_table_html(ActionTable(prefix_grammar))
    assert 'grammar-action-conflict' in html_output
    assert '<span class="conflict-action">1</span> / <span class="conflict-action">2</span>' in html_output


def test_action_table_html_without_styles(prefix_grammar):
    config = VisualizationConfig(include_inline_styles=False)
    html_output = HTMLTableGenerator(config).generate_action_table_html(ActionTable(prefix_grammar))
    assert '<style>' not in html_output


def test_parse_tree_dot(parsed):
    _, tree = parsed
    dot = DOTGenerator().generate_parse_tree_dot(tree)
    assert dot.startswith('digraph "Parse Tree" {')
    assert 'node0 -> node1;' in dot
    assert 'node2 [label="x", shape=box' in dot
    assert 'node3 [label="E\'\'", shape=ellipse' in dot


def test_empty_parse_tree_dot():
    dot = DOTGenerator().generate_parse_tree_dot(ParseTree())
    assert 'Parse tree is empty' in dot


def test_render_tree_text(parsed):
    _, tree = parsed
    assert render_tree_text(tree).splitlines() == ["E", "  E'", "    x", "  E''", "    +", "    y"]
    assert render_tree_text(tree, show_token_values=False).splitlines()[2] == "    T"


def test_latex_tree(parsed):
    _, tree = parsed
    latex = LatexTreeGenerator().generate(tree)
    assert latex.startswith("\\begin{forest}\n[{E} [{E'} [{x}]]")
    assert latex.endswith("\\end{forest}")


def test_latex_escapes_brackets():
    tree = ParseTree()
    tree.root = tree.add_node(Symbol.variable("<Program>"))
    latex = LatexTreeGenerator().generate(tree)
    assert "[{\\textless{}Program\\textgreater{}}]" in latex


def test_rule_trace_html(parsed):
    parser, _ = parsed
    trace_html = RuleTraceFormatter().generate_trace_html(parser.rule_trace, parser.grammar)
    assert trace_html.count('<tr><td') == len(parser.rule_trace)
    assert "E&#x27;&#x27; -&gt; + T E&#x27;&#x27;" in trace_html


def test_rule_trace_compact(parsed):
    parser, _ = parsed
    config = VisualizationConfig(compact_mode=True)
    trace_html = RuleTraceFormatter(config).generate_trace_html(parser.rule_trace, parser.grammar)
    assert '<p class="rule-trace">1 2 3 4</p>' in trace_html


def test_format_token_mismatch():
    error = TokenMismatchError(LexicalUnit.END, Token(LexicalUnit.EOS, "$", 3, 1))
    html_output = ErrorMessageFormatter().format_parse_error(error)
    assert '<strong>Expected:</strong> END' in html_output
    assert 'at line 3, column 1' in html_output


def test_format_no_applicable_production():
    error = NoApplicableProductionError(Symbol.variable("S"), ["a", "b"], Token("d", "d"))
    html_output = ErrorMessageFormatter().format_parse_error(error)
    assert '<strong>Acceptable:</strong> a, b' in html_output


def test_conflict_report(prefix_grammar):
    formatter = ErrorMessageFormatter()
    assert 'No conflicts' in formatter.format_conflict_report([])
    report = formatter.format_conflict_report(ActionTable(prefix_grammar).conflicts())
    assert 'Grammar Conflicts (1 found)' in report
    assert '<li>[1] a b</li>' in report


def test_generator_facade(parsed):
    parser, tree = parsed
    report = VisualizationGenerator().generate_parse_report(tree, parser.rule_trace, parser.grammar)
    assert set(report) == {'tree_dot', 'tree_text', 'tree_latex', 'trace_html'}
    grammar_report = VisualizationGenerator().generate_grammar_report(parser.action_table)
    assert 'No conflicts' in grammar_report['conflicts_html']


def test_renderers_handle_deep_trees(expression_grammar):
    types = ["T"] + ["+", "T"] * 1199
    parser = PredictiveParser(expression_grammar, make_tokens(*types))
    tree = parser.parse()
    report = VisualizationGenerator().generate_parse_report(tree, parser.rule_trace, parser.grammar)
    assert report['tree_latex'].count("[{+}]") == 1199
    assert report['tree_text'].splitlines()[-1].strip() == "T"
