"""
Grammar Transformations

Pure transformations producing a new, equivalent Grammar: useless-symbol
removal (unproductive then inaccessible symbols), direct left-recursion
removal and left factoring. None of the functions here mutate their input.
"""

from typing import Dict, List, Optional, Set, Tuple
import logging

from engine_config import EngineConfig
from grammar_model import (
    EPSILON, EPSILON_RULE, Grammar, GrammarError, ProductionRule, Symbol, fresh_name,
)


log = logging.getLogger(__name__)


def _filter_order(grammar: Grammar, kept: Set[Symbol]) -> Optional[Tuple[Symbol, ...]]:
    """Keep only surviving variables in the order, preserving relative order."""
    if grammar.order is None:
        return None
    return tuple(variable for variable in grammar.order if variable in kept)


def _insert_fresh(order: Optional[List[Symbol]], base: Symbol, new: Symbol):
    """Place a primed variable as many slots after its base as it has primes."""
    if order is None:
        return
    offset = len(new.name) - len(base.name)
    position = min(order.index(base) + offset, len(order))
    order.insert(position, new)


def _find_productive_variables(grammar: Grammar, previous: Set[Symbol]) -> Set[Symbol]:
    productive_symbols = set(grammar.terminals) | previous | {EPSILON}
    current = set(previous)
    for variable, alternatives in grammar.rules.items():
        if any(all(symbol in productive_symbols for symbol in rule) for rule in alternatives):
            current.add(variable)
    return current


def remove_unproductive(grammar: Grammar) -> Grammar:
    """
    Remove the variables that derive no terminal string.

    A variable is productive if one of its rules consists only of terminals,
    epsilon and already-known productive variables. Rules mentioning a
    non-productive symbol are dropped, then variables left without rules.
    """
    previous: Set[Symbol] = set()
    current = _find_productive_variables(grammar, previous)
    while current != previous:
        previous = current
        current = _find_productive_variables(grammar, previous)

    if grammar.start_symbol not in current:
        raise GrammarError(f"Start symbol {grammar.start_symbol} derives no terminal string")

    productive_symbols = set(grammar.terminals) | current | {EPSILON}
    rules: Dict[Symbol, Tuple[ProductionRule, ...]] = {}
    for variable, alternatives in grammar.rules.items():
        if variable not in current:
            continue
        kept = tuple(rule for rule in alternatives if all(symbol in productive_symbols for symbol in rule))
        if kept:
            rules[variable] = kept

    removed = grammar.variables - current
    if removed:
        log.debug("Removed unproductive variables: %s", sorted(v.name for v in removed))

    return Grammar(
        variables=frozenset(current),
        terminals=grammar.terminals,
        rules=rules,
        start_symbol=grammar.start_symbol,
        order=_filter_order(grammar, current),
    )


def _find_accessible_symbols(grammar: Grammar, previous: Set[Symbol]) -> Set[Symbol]:
    current = set(previous)
    for variable, alternatives in grammar.rules.items():
        if variable in previous:
            for rule in alternatives:
                current.update(rule)
    return current


def remove_inaccessible(grammar: Grammar) -> Grammar:
    """
    Remove the symbols that cannot be reached from the start symbol.

    The resulting variables and terminals are the intersections of the
    original sets with the accessible symbols.
    """
    previous: Set[Symbol] = set()
    current = {grammar.start_symbol}
    while current != previous:
        previous = current
        current = _find_accessible_symbols(grammar, previous)

    variables = grammar.variables & current
    terminals = grammar.terminals & current

    rules: Dict[Symbol, Tuple[ProductionRule, ...]] = {}
    for variable, alternatives in grammar.rules.items():
        if variable not in current:
            continue
        kept = tuple(rule for rule in alternatives if all(symbol in current for symbol in rule))
        if kept:
            rules[variable] = kept

    removed = (grammar.variables - variables) | (grammar.terminals - terminals)
    if removed:
        log.debug("Removed inaccessible symbols: %s", sorted(s.name for s in removed))

    return Grammar(
        variables=variables,
        terminals=terminals,
        rules=rules,
        start_symbol=grammar.start_symbol,
        order=_filter_order(grammar, variables),
    )


def remove_useless(grammar: Grammar) -> Grammar:
    """Remove unproductive symbols, then inaccessible ones."""
    return remove_inaccessible(remove_unproductive(grammar))


def find_recursive_variables(grammar: Grammar) -> List[Symbol]:
    """Return the directly left-recursive variables in display order."""
    recursive = []
    for variable in grammar.display_order():
        for rule in grammar.rules_of(variable):
            if len(rule) > 1 and rule[0] == variable:
                recursive.append(variable)
                break
    return recursive


def remove_left_recursion(grammar: Grammar) -> Grammar:
    """
    Remove direct left recursion.

    Each recursive variable A with rules R is rewritten with two fresh
    variables U and V:

        A -> U V
        U -> beta              for every rule A -> beta not starting with A
        V -> alpha V | epsilon for every rule A -> A alpha

    The outer loop repeats until no variable is directly left-recursive.
    Indirect left recursion is left untouched.
    """
    variables = set(grammar.variables)
    rules = dict(grammar.rules)
    order = list(grammar.order) if grammar.order is not None else None

    current = grammar
    recursive = find_recursive_variables(current)
    while recursive:
        for variable in recursive:
            names = {v.name for v in variables}
            first = Symbol.variable(fresh_name(variable.name, names))
            second = Symbol.variable(fresh_name(variable.name, names | {first.name}))
            variables.update((first, second))
            _insert_fresh(order, variable, first)
            _insert_fresh(order, variable, second)

            base_rules: List[ProductionRule] = []
            tail_rules: List[ProductionRule] = []
            for rule in rules[variable]:
                if rule[0] == variable:
                    tail_rules.append(rule[1:] + (second,))
                else:
                    base_rules.append(rule)
            tail_rules.append(EPSILON_RULE)

            rules[variable] = ((first, second),)
            rules[first] = tuple(base_rules)
            rules[second] = tuple(tail_rules)
            log.debug("Removed left recursion of %s using %s and %s", variable, first, second)

        current = Grammar(
            variables=frozenset(variables),
            terminals=grammar.terminals,
            rules=rules,
            start_symbol=grammar.start_symbol,
            order=tuple(order) if order is not None else None,
        )
        recursive = find_recursive_variables(current)

    return current


def _common_prefix(first: ProductionRule, second: ProductionRule) -> ProductionRule:
    prefix = []
    for left, right in zip(first, second):
        if left != right:
            break
        prefix.append(left)
    return tuple(prefix)


def find_factorisable_variables(grammar: Grammar) -> Dict[Symbol, ProductionRule]:
    """
    Find the variables having at least two alternatives sharing a prefix.

    Alternatives are compared pairwise (each one against every earlier one);
    the prefix kept for a variable is the one shared by the last compared
    pair that has a non-empty common prefix.
    """
    factorisable: Dict[Symbol, ProductionRule] = {}
    for variable in grammar.display_order():
        alternatives = grammar.rules_of(variable)
        prefix: ProductionRule = ()
        for i in range(1, len(alternatives)):
            for j in range(i):
                common = _common_prefix(alternatives[i], alternatives[j])
                if common and common != EPSILON_RULE:
                    prefix = common
        if prefix:
            factorisable[variable] = prefix
    return factorisable


def left_factor(grammar: Grammar) -> Grammar:
    """
    Apply left factoring until no variable has alternatives sharing a prefix.

    For a variable A whose alternatives share the prefix alpha:

        A  -> alpha A'          (appended after the untouched alternatives)
        A' -> suffix | ...      (epsilon when an alternative equals alpha)
    """
    variables = set(grammar.variables)
    rules = dict(grammar.rules)
    order = list(grammar.order) if grammar.order is not None else None

    current = grammar
    factorisable = find_factorisable_variables(current)
    while factorisable:
        for variable, prefix in factorisable.items():
            new_variable = Symbol.variable(fresh_name(variable.name, {v.name for v in variables}))
            variables.add(new_variable)
            _insert_fresh(order, variable, new_variable)

            remaining = []
            suffixes = []
            for rule in rules[variable]:
                if rule[:len(prefix)] == prefix:
                    suffixes.append(rule[len(prefix):] or EPSILON_RULE)
                else:
                    remaining.append(rule)
            remaining.append(prefix + (new_variable,))

            rules[variable] = tuple(remaining)
            rules[new_variable] = tuple(suffixes)
            log.debug("Left factored %s on prefix '%s' into %s",
                      variable, " ".join(map(str, prefix)), new_variable)

        current = Grammar(
            variables=frozenset(variables),
            terminals=grammar.terminals,
            rules=rules,
            start_symbol=grammar.start_symbol,
            order=tuple(order) if order is not None else None,
        )
        factorisable = find_factorisable_variables(current)

    return current


def reduce_grammar(grammar: Grammar, config: Optional[EngineConfig] = None) -> Grammar:
    """
    Run the transformation pipeline used before building the parser.

    Useless symbols are removed first, then left recursion, then the
    grammar is left factored. Each stage can be switched off in the config.
    """
    config = config or EngineConfig()
    reduced = grammar
    if config.remove_useless:
        reduced = remove_useless(reduced)
    if config.remove_left_recursion:
        reduced = remove_left_recursion(reduced)
    if config.left_factor:
        reduced = left_factor(reduced)
    log.debug("Reduced grammar has %d variables and %d rules",
              len(reduced.variables), len(reduced.numbered_rules()))
    return reduced
