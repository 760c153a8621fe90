"""
First/Follow Analysis and LL Action Table

This module computes FIRST and FOLLOW sets by iterative fixpoints and derives
the LL action table mapping (variable, lookahead terminal) to the set of
applicable alternatives. Cells holding more than one alternative are LL(1)
conflicts; is_ll(n) reports whether every cell holds at most n alternatives.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Set, Tuple
import logging

from grammar_model import EPSILON, Grammar, ProductionRule, Symbol, rule_to_string


log = logging.getLogger(__name__)


class FirstFollowComputer:
    """Computes FIRST and FOLLOW sets for the symbols of a grammar."""

    def __init__(self, grammar: Grammar):
        self.grammar = grammar
        self._first: Optional[Dict[Symbol, Set[Symbol]]] = None
        self._follow: Optional[Dict[Symbol, Optional[Set[Symbol]]]] = None

    def compute_first_sets(self) -> Dict[Symbol, Set[Symbol]]:
        """
        Compute FIRST sets for all terminals and variables.

        FIRST(a) = {a} for a terminal. For a variable, every rule contributes
        the FIRST set of its leading symbol; passes over all variables repeat
        until no set changes.
        """
        first: Dict[Symbol, Set[Symbol]] = {terminal: {terminal} for terminal in self.grammar.terminals}
        first[EPSILON] = {EPSILON}
        for variable in self.grammar.variables:
            first[variable] = set()

        passes = 1
        updated = self.first_pass(first)
        while updated != first:
            first = updated
            updated = self.first_pass(first)
            passes += 1

        log.debug("FIRST sets stabilised after %d passes", passes)
        self._first = first
        return {symbol: set(members) for symbol, members in first.items()}

    def first_pass(self, first: Dict[Symbol, Set[Symbol]]) -> Dict[Symbol, Set[Symbol]]:
        """
        Run one pass of the FIRST computation over every variable.

        The given sets are left untouched. Updates made earlier in the pass
        are visible to later variables.
        """
        current = {symbol: set(members) for symbol, members in first.items()}
        for variable in self.grammar.display_order():
            for rule in self.grammar.rules_of(variable):
                current[variable] |= self._lookup_first(current, rule[0])
        return current

    def compute_follow_sets(self) -> Dict[Symbol, Optional[Set[Symbol]]]:
        """
        Compute FOLLOW sets for all variables.

        FOLLOW(start) stays None: no symbol follows the start symbol. For every
        occurrence B -> ... A beta, FIRST(beta) minus epsilon is added to
        FOLLOW(A), and FOLLOW(B) too when beta is absent or nullable. Only the
        single symbol right after A is consulted.
        """
        first = self._first_sets()
        follow: Dict[Symbol, Optional[Set[Symbol]]] = {}
        for variable in self.grammar.variables:
            follow[variable] = None if variable == self.grammar.start_symbol else set()

        passes = 1
        updated = self.follow_pass(first, follow)
        while updated != follow:
            follow = updated
            updated = self.follow_pass(first, follow)
            passes += 1

        log.debug("FOLLOW sets stabilised after %d passes", passes)
        self._follow = follow
        return {symbol: (set(members) if members is not None else None) for symbol, members in follow.items()}

    def follow_pass(self,
                    first: Dict[Symbol, Set[Symbol]],
                    follow: Dict[Symbol, Optional[Set[Symbol]]]) -> Dict[Symbol, Optional[Set[Symbol]]]:
        """Run one pass of the FOLLOW computation; the given sets are left untouched."""
        current = {symbol: (set(members) if members is not None else None) for symbol, members in follow.items()}
        for lhs in self.grammar.display_order():
            for rule in self.grammar.rules_of(lhs):
                for i, symbol in enumerate(rule):
                    if symbol not in self.grammar.variables or current[symbol] is None:
                        continue
                    beta = rule[i + 1] if i + 1 < len(rule) else None
                    if beta is not None:
                        current[symbol] |= self._lookup_first(first, beta) - {EPSILON}
                    if beta is None or EPSILON in self._lookup_first(first, beta):
                        current[symbol] |= current[lhs] or set()
        return current

    def get_first(self, symbol: Symbol) -> Set[Symbol]:
        """Get the FIRST set of any symbol."""
        return set(self._lookup_first(self._first_sets(), symbol))

    def get_follow(self, variable: Symbol) -> Optional[Set[Symbol]]:
        """Get the FOLLOW set of a variable; None for the start symbol."""
        follow = self._follow_sets().get(variable, set())
        return set(follow) if follow is not None else None

    def _first_sets(self) -> Dict[Symbol, Set[Symbol]]:
        if self._first is None:
            self.compute_first_sets()
        return self._first

    def _follow_sets(self) -> Dict[Symbol, Optional[Set[Symbol]]]:
        if self._follow is None:
            self.compute_follow_sets()
        return self._follow

    @staticmethod
    def _lookup_first(first: Dict[Symbol, Set[Symbol]], symbol: Symbol) -> Set[Symbol]:
        if symbol in first:
            return first[symbol]
        if symbol.is_variable:
            return set()
        # Undeclared terminal
        return {symbol}


@dataclass
class LLConflict:
    """An action table cell holding more than one alternative."""
    variable: Symbol
    terminal: Symbol
    rules: List[ProductionRule]
    rule_numbers: List[int]

    def __str__(self) -> str:
        alternatives = " | ".join(rule_to_string(rule) for rule in self.rules)
        numbers = ", ".join(str(number) for number in self.rule_numbers)
        return f"LL(1) conflict for {self.variable} on '{self.terminal}': rules {numbers} ({alternatives})"


class ActionTable:
    """
    LL action table built from FIRST and FOLLOW sets.

    For each rule A -> a1 a2 ... an the symbols are scanned left to right:
    every terminal of FIRST(aj) predicts the rule; when FIRST(aj) contains
    epsilon, every terminal of FOLLOW(A) predicts it too and scanning goes on
    with aj+1, otherwise the rule is complete.
    """

    def __init__(self, grammar: Grammar, computer: Optional[FirstFollowComputer] = None):
        self.grammar = grammar
        self.computer = computer or FirstFollowComputer(grammar)
        self.first = self.computer.compute_first_sets()
        self.follow = self.computer.compute_follow_sets()
        self._rule_numbers = grammar.rule_numbers()
        self._entries: Dict[Tuple[Symbol, Symbol], Set[ProductionRule]] = {}
        self._build()

    def _build(self):
        for variable in self.grammar.display_order():
            follow = self.follow.get(variable)
            for rule in self.grammar.rules_of(variable):
                for symbol in rule:
                    first = self.computer.get_first(symbol)
                    for terminal in first - {EPSILON}:
                        self._add_entry(variable, terminal, rule)
                    if EPSILON not in first:
                        break
                    for terminal in follow or ():
                        self._add_entry(variable, terminal, rule)

        conflicts = self.conflicts()
        if conflicts:
            log.debug("Action table has %d conflicting cells", len(conflicts))

    def _add_entry(self, variable: Symbol, terminal: Symbol, rule: ProductionRule):
        self._entries.setdefault((variable, terminal), set()).add(rule)

    @property
    def entries(self) -> Dict[Tuple[Symbol, Symbol], List[ProductionRule]]:
        return {key: self.cell(*key) for key in self._entries}

    def cell(self, variable: Symbol, terminal: Symbol) -> List[ProductionRule]:
        """Alternatives predicted for (variable, terminal), in rule order."""
        rules = self._entries.get((variable, terminal), set())
        alternatives = self.grammar.rules_of(variable)
        return sorted(rules, key=alternatives.index)

    def cell_numbers(self, variable: Symbol, terminal: Symbol) -> List[int]:
        alternatives = self.grammar.rules_of(variable)
        return [self._rule_numbers[variable] + alternatives.index(rule) for rule in self.cell(variable, terminal)]

    def conflicts(self) -> List[LLConflict]:
        """List the cells holding more than one alternative."""
        conflicts = []
        for variable in self.grammar.display_order():
            for terminal in self.sorted_terminals():
                rules = self.cell(variable, terminal)
                if len(rules) > 1:
                    conflicts.append(LLConflict(
                        variable=variable,
                        terminal=terminal,
                        rules=rules,
                        rule_numbers=self.cell_numbers(variable, terminal),
                    ))
        return conflicts

    def is_ll(self, n: int) -> bool:
        """True if every cell of the table holds at most n alternatives."""
        return all(len(rules) <= n for rules in self._entries.values())

    def sorted_terminals(self) -> List[Symbol]:
        predicted = {terminal for _, terminal in self._entries}
        return sorted(set(self.grammar.terminals) | predicted, key=lambda t: t.name)

    def _set_to_string(self, members: Iterable[Symbol], epsilon_label: str) -> str:
        names = sorted(epsilon_label if symbol == EPSILON else symbol.name for symbol in members)
        return "{ " + "".join(name + " " for name in names) + "}"

    def dump(self, epsilon_label: str = "epsilon") -> str:
        """Render the FIRST sets, FOLLOW sets and action table as text."""
        order = self.grammar.display_order()
        lines = ["First :"]
        for variable in order:
            lines.append(f"{variable}  : {self._set_to_string(self.first[variable], epsilon_label)}")
        lines.append("")
        lines.append("Follow :")
        for variable in order:
            follow = self.follow.get(variable)
            lines.append(f"{variable}  : {self._set_to_string(follow or (), epsilon_label)}")
        lines.append("")
        lines.append("Action Table :")
        for variable in order:
            for terminal in self.sorted_terminals():
                numbers = self.cell_numbers(variable, terminal)
                if numbers:
                    lines.append(f"[ {variable}   {terminal} ] = {' '.join(str(n) for n in numbers)}")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.dump()
