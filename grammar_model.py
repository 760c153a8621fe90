"""
Grammar Model - Symbols, Production Rules and Grammar Values

This module implements the grammar representation used by the LL(1) front end:
a tagged symbol type, immutable grammar values G = (V, T, P, S) with an optional
display order over the variables, rule numbering, and a reader for the textual
BNF notation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Set, Tuple
import logging
import re
from types import MappingProxyType


log = logging.getLogger(__name__)


class GrammarError(ValueError):
    """Raised when a grammar value violates its structural invariants."""


class SymbolKind(Enum):
    """Kinds of grammar symbols."""
    TERMINAL = "terminal"
    VARIABLE = "variable"
    EPSILON = "epsilon"


@dataclass(frozen=True)
class Symbol:
    """A terminal, a variable or the empty string, compared structurally."""
    kind: SymbolKind
    name: str = ""

    @classmethod
    def terminal(cls, name: str) -> 'Symbol':
        return cls(SymbolKind.TERMINAL, name)

    @classmethod
    def variable(cls, name: str) -> 'Symbol':
        return cls(SymbolKind.VARIABLE, name)

    @property
    def is_terminal(self) -> bool:
        return self.kind is SymbolKind.TERMINAL

    @property
    def is_variable(self) -> bool:
        return self.kind is SymbolKind.VARIABLE

    @property
    def is_epsilon(self) -> bool:
        return self.kind is SymbolKind.EPSILON

    def __str__(self) -> str:
        if self.is_epsilon:
            return "epsilon"
        return self.name

    def __repr__(self) -> str:
        return f"{self.kind.value}({self.name!r})" if not self.is_epsilon else "EPSILON"


EPSILON = Symbol(SymbolKind.EPSILON)

ProductionRule = Tuple[Symbol, ...]
EPSILON_RULE: ProductionRule = (EPSILON,)

EPSILON_NAMES = frozenset({"", "epsilon", "ε"})


def fresh_name(base: str, existing: Iterable[str]) -> str:
    """
    Generate a variable name derived from base that is not in existing.

    Apostrophes are appended to base until the name is unused, so the first
    fresh name for 'A' is "A'", the second "A''", and so on.
    """
    taken = set(existing)
    name = base + "'"
    while name in taken:
        name += "'"
    return name


def rule_to_string(rule: Sequence[Symbol]) -> str:
    return " ".join(str(symbol) for symbol in rule)


@dataclass(frozen=True)
class Grammar:
    """
    Represents a context-free grammar G = (V, T, P, S).

    Rules map each variable to its ordered alternatives. The optional order
    is a permutation of the variables used for rule numbering and display
    only. Grammar values are never mutated; transformations build new ones.
    """
    variables: FrozenSet[Symbol]
    terminals: FrozenSet[Symbol]
    rules: Mapping[Symbol, Tuple[ProductionRule, ...]]
    start_symbol: Symbol
    order: Optional[Tuple[Symbol, ...]] = field(default=None)

    def __post_init__(self):
        object.__setattr__(self, 'variables', frozenset(self.variables))
        object.__setattr__(self, 'terminals', frozenset(self.terminals))
        object.__setattr__(self, 'rules', MappingProxyType({
            variable: tuple(tuple(rule) for rule in alternatives)
            for variable, alternatives in self.rules.items()
        }))
        if self.order is not None:
            object.__setattr__(self, 'order', tuple(self.order))
        self._validate()

    def __hash__(self) -> int:
        return hash((self.variables, self.terminals, frozenset(self.rules.items()),
                     self.start_symbol, self.order))

    def _validate(self):
        if self.start_symbol not in self.variables:
            raise GrammarError(f"Start symbol {self.start_symbol} is not a variable of the grammar")
        for variable, alternatives in self.rules.items():
            if variable not in self.variables:
                raise GrammarError(f"Rules are given for {variable}, which is not a variable")
            if not alternatives:
                raise GrammarError(f"Variable {variable} has an empty list of alternatives")
            for rule in alternatives:
                if not rule:
                    raise GrammarError(f"Variable {variable} has an empty rule body; use epsilon instead")
                if len(rule) > 1 and EPSILON in rule:
                    raise GrammarError(f"Epsilon must be the whole rule body of {variable}: {rule_to_string(rule)}")
        if self.order is not None:
            if len(self.order) != len(self.variables) or set(self.order) != self.variables:
                raise GrammarError("Variable order must be a permutation of the variables")

    @classmethod
    def build(cls,
              variables: Iterable[str],
              terminals: Iterable[str],
              rules: Mapping[str, Iterable[Iterable[str]]],
              start_symbol: str,
              order: Optional[Iterable[str]] = None) -> 'Grammar':
        """
        Build a grammar from plain symbol names.

        Args:
            variables: Names of the variables
            terminals: Names of the terminals
            rules: Mapping from a variable name to its alternatives, each a list of names
            start_symbol: Name of the start symbol
            order: Optional display order over the variable names

        Returns:
            Grammar whose symbols are classified by the given variable names;
            "", "epsilon" and "ε" denote the empty string, and any other name
            outside the variables is a terminal (possibly undeclared).
        """
        variable_names = set(variables)

        def to_symbol(name: str) -> Symbol:
            if name in variable_names:
                return Symbol.variable(name)
            if name in EPSILON_NAMES:
                return EPSILON
            return Symbol.terminal(name)

        return cls(
            variables=frozenset(Symbol.variable(name) for name in variable_names),
            terminals=frozenset(Symbol.terminal(name) for name in terminals if name not in EPSILON_NAMES),
            rules={
                Symbol.variable(lhs): tuple(tuple(to_symbol(name) for name in rule) for rule in alternatives)
                for lhs, alternatives in rules.items()
            },
            start_symbol=Symbol.variable(start_symbol),
            order=tuple(Symbol.variable(name) for name in order) if order is not None else None,
        )

    def rules_of(self, variable: Symbol) -> Tuple[ProductionRule, ...]:
        """Return the alternatives of a variable (empty if it has none)."""
        return self.rules.get(variable, ())

    def has_epsilon_rule(self, variable: Symbol) -> bool:
        return EPSILON_RULE in self.rules_of(variable)

    def variable_names(self) -> Set[str]:
        return {variable.name for variable in self.variables}

    def display_order(self) -> Tuple[Symbol, ...]:
        """Order used for numbering: the explicit order or rule insertion order."""
        if self.order is not None:
            return self.order
        ordered = [variable for variable in self.rules if variable in self.variables]
        rest = sorted((v for v in self.variables if v not in self.rules), key=lambda v: v.name)
        return tuple(ordered + rest)

    def rule_numbers(self) -> Dict[Symbol, int]:
        """Map each variable to the 1-based number of its first rule."""
        numbers: Dict[Symbol, int] = {}
        next_number = 1
        for variable in self.display_order():
            numbers[variable] = next_number
            next_number += len(self.rules_of(variable))
        return numbers

    def rule_number(self, variable: Symbol, index: int) -> int:
        return self.rule_numbers()[variable] + index

    def numbered_rules(self) -> List[Tuple[int, Symbol, ProductionRule]]:
        """List every rule as (number, left-hand side, body) in numbering order."""
        numbered = []
        number = 1
        for variable in self.display_order():
            for rule in self.rules_of(variable):
                numbered.append((number, variable, rule))
                number += 1
        return numbered

    def replace(self, **changes) -> 'Grammar':
        """Return a copy of this grammar with some components replaced."""
        values = {
            'variables': self.variables,
            'terminals': self.terminals,
            'rules': self.rules,
            'start_symbol': self.start_symbol,
            'order': self.order,
        }
        values.update(changes)
        return Grammar(**values)

    def __str__(self) -> str:
        lines = []
        numbered = self.numbered_rules()
        width = len(str(len(numbered))) + 2
        lhs_width = max((len(str(lhs)) for _, lhs, _ in numbered), default=0)
        previous = None
        for number, lhs, rule in numbered:
            label = f"[{number}]".rjust(width)
            head = str(lhs) if lhs != previous else ""
            arrow = "->" if lhs != previous else " |"
            lines.append(f"{label} {head.ljust(lhs_width)} {arrow} {rule_to_string(rule)}")
            previous = lhs
        return "\n".join(lines)


class GrammarReader:
    """
    Reads grammars written in textual BNF notation.

    Supported formats:
    - A -> alpha | beta
    - A : alpha | beta
    - A ::= alpha | beta
    - A = alpha | beta

    Epsilon is written as 'e', 'ε', 'epsilon' or as an empty alternative.
    Bracketed names such as <Program> or [VarName] are single symbols.
    """

    _NAME = r"(?:<[^<>\s]+>'*|[A-Za-z_]\w*'*)"
    _ARROW = r"(?:->|::=|:(?!=)|=)"
    _PRODUCTION_START = re.compile(rf"^\s*({_NAME})\s*{_ARROW}\s*(.*)$", re.DOTALL)
    _SYMBOL = re.compile(r"'([^']*)'|\"([^\"]*)\"|(<[^<>\s]+>'*)|(\[[^\]\s]+\])|([A-Za-z_]\w*'*)|([^\s'\"]+)")

    def __init__(self):
        self.productions: List[Tuple[str, List[List[str]]]] = []

    def read(self, cfg_text: str, start_symbol: Optional[str] = None) -> Grammar:
        """
        Parse CFG text and return a Grammar.

        Args:
            cfg_text: Grammar text
            start_symbol: Optional start symbol; defaults to the first left-hand side

        Returns:
            Grammar whose order follows the first appearance of each left-hand side
        """
        self.productions = []
        cfg_text = self._clean_input(cfg_text)
        for raw_production in self._extract_raw_productions(cfg_text):
            self._normalize_production(raw_production)

        if not self.productions:
            raise GrammarError("No productions found in grammar text")

        order: List[str] = []
        rules: Dict[str, List[List[str]]] = {}
        for lhs, alternatives in self.productions:
            if lhs not in rules:
                order.append(lhs)
                rules[lhs] = []
            rules[lhs].extend(alternatives)

        variables = set(order)
        terminals = {
            name
            for alternatives in rules.values()
            for alternative in alternatives
            for name in alternative
            if name not in variables and name not in EPSILON_NAMES
        }

        start = start_symbol if start_symbol is not None else order[0]
        if start not in variables:
            raise GrammarError(f"Start symbol '{start}' has no productions")

        log.debug("Read %d variables and %d terminals", len(variables), len(terminals))
        return Grammar.build(variables, terminals, rules, start, order)

    def _clean_input(self, cfg_text: str) -> str:
        """Remove comments and blank lines."""
        cfg_text = re.sub(r'//.*$', '', cfg_text, flags=re.MULTILINE)
        cfg_text = re.sub(r'/\*.*?\*/', '', cfg_text, flags=re.DOTALL)
        lines = [line.strip() for line in cfg_text.split('\n')]
        return '\n'.join(line for line in lines if line)

    def _extract_raw_productions(self, cfg_text: str) -> List[str]:
        """Group lines into one string per production."""
        productions = []
        blocks = cfg_text.split(';') if ';' in cfg_text else [cfg_text]
        for block in blocks:
            current = ""
            for line in block.strip().split('\n'):
                line = line.strip()
                if not line:
                    continue
                if self._PRODUCTION_START.match(line):
                    if current:
                        productions.append(current)
                    current = line
                elif current:
                    # Alternatives starting with '|' and wrapped bodies
                    current += ' ' + line
                else:
                    raise GrammarError(f"Line does not start a production: {line}")
            if current:
                productions.append(current)
        return productions

    def _normalize_production(self, raw_production: str):
        match = self._PRODUCTION_START.match(raw_production)
        lhs = match.group(1)
        alternatives = []
        for alternative in match.group(2).split('|'):
            alternative = alternative.strip()
            if alternative in ('', 'e', 'ε', 'epsilon'):
                alternatives.append([""])
            else:
                alternatives.append(self._parse_symbols(alternative))
        self.productions.append((lhs, alternatives))

    def _parse_symbols(self, rhs_text: str) -> List[str]:
        symbols = []
        for match in self._SYMBOL.finditer(rhs_text):
            symbols.append(next(group for group in match.groups() if group is not None))
        return symbols
