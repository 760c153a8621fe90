import pytest

from conftest import make_tokens
from engine_config import EngineConfig
from grammar_model import GrammarReader, Symbol
from ll_parser import (
    NoApplicableProductionError, ParseTree, PredictiveParser, Token, TokenMismatchError,
)
from pascalmp import LexicalUnit, TERMINAL_MAP, pascalmp_grammar


V = Symbol.variable
T = Symbol.terminal


def test_parses_left_recursive_expression(expression_grammar):
    parser = PredictiveParser(expression_grammar, make_tokens("T", "+", "T", "+", "T"))
    tree = parser.parse()
    assert parser.is_ll(1)
    assert parser.rule_trace == [1, 2, 3, 3, 4]
    assert [token.type for token in tree.leaves()] == ["T", "+", "T", "+", "T"]
    assert tree.label(tree.root) == V("E")


def test_parses_long_expression(expression_grammar):
    types = ["T"] + ["+", "T"] * 1199
    parser = PredictiveParser(expression_grammar, make_tokens(*types))
    tree = parser.parse()
    assert parser.rule_trace == [1, 2] + [3] * 1199 + [4]
    assert [token.type for token in tree.leaves()] == types


def test_parses_left_factored_alternatives(prefix_grammar):
    parser = PredictiveParser(prefix_grammar, make_tokens("a", "c"))
    tree = parser.parse()
    assert parser.rule_trace == [1, 3]
    assert [token.value for token in tree.leaves()] == ["a", "c"]


def test_select_returns_alternative_index(prefix_grammar):
    parser = PredictiveParser(prefix_grammar, make_tokens("a", "b"))
    assert parser.select(V("S'"), "b") == 0
    assert parser.select(V("S'"), "c") == 1
    assert parser.select(V("S'"), "a") is None


def test_no_applicable_production(prefix_grammar):
    parser = PredictiveParser(prefix_grammar, make_tokens("d"))
    with pytest.raises(NoApplicableProductionError) as info:
        parser.parse()
    assert info.value.variable == V("S")
    assert info.value.acceptable == ["a"]
    assert info.value.token.value == "d"
    assert "Acceptable lexical units: a" in str(info.value)


def test_terminal_mismatch(prefix_grammar):
    grammar = GrammarReader().read("S -> a b")
    parser = PredictiveParser(grammar, make_tokens("a", "c"))
    with pytest.raises(TokenMismatchError) as info:
        parser.parse()
    assert info.value.expected == "b"
    assert info.value.token.type == "c"


def test_trailing_input_is_rejected(prefix_grammar):
    parser = PredictiveParser(prefix_grammar, make_tokens("a", "b", "b"))
    with pytest.raises(TokenMismatchError) as info:
        parser.parse()
    assert info.value.expected == "$"


def test_trailing_input_allowed_when_configured(prefix_grammar):
    config = EngineConfig(require_end_of_stream=False)
    parser = PredictiveParser(prefix_grammar, make_tokens("a", "b", "b"), config=config)
    parser.parse()
    assert parser.rule_trace == [1, 2]


def test_empty_token_stream_is_rejected(prefix_grammar):
    with pytest.raises(ValueError):
        PredictiveParser(prefix_grammar, [])


def test_selection_agrees_with_action_table():
    parser = PredictiveParser(pascalmp_grammar(), [Token(LexicalUnit.EOS, "$")], TERMINAL_MAP)
    table = parser.action_table
    assert table.is_ll(1)
    for (variable, terminal), rules in table.entries.items():
        choice = parser.select(variable, parser.unit_of(terminal))
        assert parser.grammar.rules_of(variable)[choice] == rules[0]


class TestPascalMP:

    def test_assignment_program(self, assignment_tokens):
        parser = PredictiveParser(pascalmp_grammar(), assignment_tokens, TERMINAL_MAP)
        tree = parser.parse()
        assert parser.rule_trace == [1, 3, 4, 7, 13, 14, 15, 19, 20, 25, 23, 18, 5]
        assert len(parser.rule_trace) == 13
        assert [token.value for token in tree.leaves()] == ["begin", "x", ":=", "5", "end"]

    def test_missing_end(self, assignment_tokens):
        tokens = assignment_tokens[:4] + assignment_tokens[5:]
        parser = PredictiveParser(pascalmp_grammar(), tokens, TERMINAL_MAP)
        with pytest.raises(TokenMismatchError) as info:
            parser.parse()
        assert info.value.expected is LexicalUnit.END
        assert info.value.token.type is LexicalUnit.EOS
        assert "Expected lexical unit: END" in str(info.value)

    def test_unproductive_alternative_is_removed(self):
        parser = PredictiveParser(pascalmp_grammar(), [Token(LexicalUnit.EOS, "$")], TERMINAL_MAP)
        assert V("<For>") not in parser.grammar.variables
        assert V("<EndInstList>") not in parser.grammar.variables
        assert len(parser.grammar.rules_of(V("<Instruction>"))) == 6

    def test_long_instruction_list(self):
        tokens = [Token(LexicalUnit.BEG, "begin")]
        for i in range(600):
            if i:
                tokens.append(Token(LexicalUnit.DOTS, "..."))
            tokens += [Token(LexicalUnit.VARNAME, "x"), Token(LexicalUnit.ASSIGN, ":="),
                       Token(LexicalUnit.NUMBER, "1")]
        tokens += [Token(LexicalUnit.END, "end"), Token(LexicalUnit.EOS, "$")]

        parser = PredictiveParser(pascalmp_grammar(), tokens, TERMINAL_MAP)
        tree = parser.parse()
        assert len(tree.find(V("<Assign>"))) == 600
        assert len(tree.leaves()) == len(tokens) - 1
        assert parser.rule_trace[-1] == 5

    def test_parse_can_be_repeated(self, assignment_tokens):
        parser = PredictiveParser(pascalmp_grammar(), assignment_tokens, TERMINAL_MAP)
        parser.parse()
        first_trace = list(parser.rule_trace)
        parser.parse()
        assert parser.rule_trace == first_trace


class TestParseTree:

    @pytest.fixture
    def tree(self, expression_grammar):
        tokens = make_tokens("T", "+", "T")
        return PredictiveParser(expression_grammar, tokens).parse()

    def test_structure(self, tree):
        root = tree.root
        e1, e2 = tree.children(root)
        assert tree.label(e1) == V("E'")
        assert tree.label(e2) == V("E''")
        assert tree.parent(e1) == root
        assert tree.is_leaf(tree.children(e1)[0])
        assert not tree.is_leaf(e1)
        assert len(tree) == 6

    def test_walk_is_pre_order(self, tree):
        labels = [str(tree.label(i)) for i in tree.walk()]
        assert labels == ["E", "E'", "T", "E''", "+", "T"]

    def test_find(self, tree):
        assert len(tree.find(T("T"))) == 2

    def test_detach(self, tree):
        _, e2 = tree.children(tree.root)
        tree.detach(e2)
        assert [token.type for token in tree.leaves()] == ["T"]
        assert tree.parent(e2) is None
        assert len(tree) == 3

    def test_splice(self, tree):
        e1, e2 = tree.children(tree.root)
        leaf = tree.children(e1)[0]
        tree.splice(e1)
        assert tree.children(tree.root) == [leaf, e2]
        assert tree.parent(leaf) == tree.root
        assert [token.type for token in tree.leaves()] == ["T", "+", "T"]

    def test_splice_root_is_rejected(self, tree):
        with pytest.raises(ValueError):
            tree.splice(tree.root)

    def test_relabel(self, tree):
        tree.relabel(tree.root, V("Expr"))
        assert tree.label(tree.root) == V("Expr")

    def test_empty_tree(self):
        tree = ParseTree()
        assert list(tree.walk()) == []
        assert len(tree) == 0
