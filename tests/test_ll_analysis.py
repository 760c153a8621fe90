import pytest

from grammar_model import EPSILON, GrammarReader, Symbol
from grammar_transform import left_factor, reduce_grammar
from ll_analysis import ActionTable, FirstFollowComputer
from pascalmp import pascalmp_grammar


V = Symbol.variable
T = Symbol.terminal


def test_first_of_terminal_is_itself(expression_grammar):
    computer = FirstFollowComputer(reduce_grammar(expression_grammar))
    assert computer.get_first(T("+")) == {T("+")}
    assert computer.get_first(EPSILON) == {EPSILON}


def test_first_and_follow_of_reduced_expression_grammar(expression_grammar):
    computer = FirstFollowComputer(reduce_grammar(expression_grammar))
    first = computer.compute_first_sets()
    assert first[V("E")] == {T("T")}
    assert first[V("E'")] == {T("T")}
    assert first[V("E''")] == {T("+"), EPSILON}

    follow = computer.compute_follow_sets()
    assert follow[V("E")] is None
    assert follow[V("E'")] == {T("+")}
    assert follow[V("E''")] == set()


def test_follow_of_start_symbol_is_none():
    grammar = GrammarReader().read("S -> a S b | c")
    computer = FirstFollowComputer(grammar)
    assert computer.get_follow(V("S")) is None


def test_follow_uses_next_symbol():
    grammar = GrammarReader().read("S -> A b | A c\nA -> a")
    computer = FirstFollowComputer(grammar)
    assert computer.get_follow(V("A")) == {T("b"), T("c")}


@pytest.mark.parametrize("grammar_factory", [
    lambda: GrammarReader().read("E -> E + T | T"),
    pascalmp_grammar,
])
def test_one_more_pass_leaves_sets_unchanged(grammar_factory):
    computer = FirstFollowComputer(reduce_grammar(grammar_factory()))
    first = computer.compute_first_sets()
    follow = computer.compute_follow_sets()
    assert computer.first_pass(first) == first
    assert computer.follow_pass(first, follow) == follow


def test_single_pass_grows_initial_sets(expression_grammar):
    computer = FirstFollowComputer(reduce_grammar(expression_grammar))
    first = {symbol: set() for symbol in computer.grammar.variables}
    first.update({T("T"): {T("T")}, T("+"): {T("+")}, EPSILON: {EPSILON}})
    assert computer.first_pass(first)[V("E''")] == {T("+"), EPSILON}
    assert first[V("E''")] == set()


def test_action_table_cells(expression_grammar):
    table = ActionTable(reduce_grammar(expression_grammar))
    assert table.cell_numbers(V("E"), T("T")) == [1]
    assert table.cell_numbers(V("E'"), T("T")) == [2]
    assert table.cell_numbers(V("E''"), T("+")) == [3]
    assert table.cell(V("E"), T("+")) == []
    assert table.is_ll(1)
    assert table.conflicts() == []


def test_conflicting_grammar_is_not_ll1(prefix_grammar):
    table = ActionTable(prefix_grammar)
    assert not table.is_ll(1)
    assert table.is_ll(2)
    conflicts = table.conflicts()
    assert len(conflicts) == 1
    assert conflicts[0].variable == V("S")
    assert conflicts[0].terminal == T("a")
    assert conflicts[0].rule_numbers == [1, 2]
    assert "S" in str(conflicts[0])


def test_left_factoring_resolves_conflict(prefix_grammar):
    assert ActionTable(left_factor(prefix_grammar)).is_ll(1)


def test_left_recursive_grammar_is_not_ll1(expression_grammar):
    assert not ActionTable(expression_grammar).is_ll(1)


def test_nullable_leading_symbol_predicts_on_follow():
    grammar = GrammarReader().read("S -> A b\nA -> a | e")
    table = ActionTable(grammar)
    assert table.cell_numbers(V("S"), T("a")) == [1]
    assert table.cell_numbers(V("S"), T("b")) == [1]
    assert table.cell_numbers(V("A"), T("a")) == [2]
    assert table.cell_numbers(V("A"), T("b")) == [3]


def test_pascalmp_reduced_grammar_is_ll1():
    table = ActionTable(reduce_grammar(pascalmp_grammar()))
    assert table.is_ll(1), [str(conflict) for conflict in table.conflicts()]


def test_dump_sections(expression_grammar):
    table = ActionTable(reduce_grammar(expression_grammar))
    dump = table.dump()
    assert dump.startswith("First :")
    assert "Follow :" in dump
    assert "Action Table :" in dump
    assert "[ E   T ] = 1" in dump
    assert "E''  : { + epsilon }" in dump
    assert "E''  : { + ε }" in table.dump(epsilon_label="ε")
