"""
Predictive Parser

Recursive-descent LL(1) parser driven by the FIRST and FOLLOW sets of a
reduced grammar. It consumes a token stream terminated by an end-of-stream
marker and produces a parse tree stored in an index-based arena, together
with the trace of rule numbers applied during the parse.
"""

from dataclasses import dataclass, field
from typing import Any, Iterator, List, Mapping, Optional, Sequence, Tuple
import logging

from engine_config import EngineConfig
from grammar_model import EPSILON_RULE, Grammar, ProductionRule, Symbol
from grammar_transform import reduce_grammar
from ll_analysis import ActionTable


log = logging.getLogger(__name__)


@dataclass
class Token:
    """A token produced by the external lexical scanner."""
    type: Any  # Lexical unit
    value: Any
    line: int = 1
    column: int = 1

    def __str__(self) -> str:
        return f"Token({self.type}, '{self.value}', line={self.line}, column={self.column})"


def _unit_name(unit: Any) -> str:
    return getattr(unit, 'name', str(unit))


class ParseError(Exception):
    """Base class for fatal syntax errors; carries the offending token."""

    def __init__(self, message: str, token: Token):
        super().__init__(message)
        self.token = token

    @staticmethod
    def describe_token(token: Token) -> str:
        return (f"Token encountered: type = {_unit_name(token.type)} value = {token.value} "
                f"at line {token.line} and column {token.column}")


class TokenMismatchError(ParseError):
    """The expected terminal does not match the current token."""

    def __init__(self, expected: Any, token: Token):
        self.expected = expected
        message = ("Syntax Error:\n"
                   "The following token does not match with the expected lexical unit:\n"
                   f"Expected lexical unit: {_unit_name(expected)}\n"
                   f"{self.describe_token(token)}")
        super().__init__(message, token)


class NoApplicableProductionError(ParseError):
    """No alternative of the current variable accepts the lookahead."""

    def __init__(self, variable: Symbol, acceptable: Sequence[Any], token: Token):
        self.variable = variable
        self.acceptable = list(acceptable)
        message = ("Syntax Error:\n"
                   "The following token does not match with any of the acceptable lexical units expected\n"
                   f"Acceptable lexical units: {' '.join(_unit_name(unit) for unit in self.acceptable)}\n"
                   f"{self.describe_token(token)}")
        super().__init__(message, token)


@dataclass
class ParseNode:
    """A node of the parse tree arena; links are indices into the arena."""
    label: Symbol
    token: Optional[Token] = None
    children: List[int] = field(default_factory=list)
    parent: Optional[int] = None


class ParseTree:
    """
    Parse tree stored as an arena of nodes.

    Parent and child links are indices, so removing or splicing nodes is
    index rewiring. Detached nodes stay in the arena but are no longer
    reachable from the root.
    """

    def __init__(self):
        self.nodes: List[ParseNode] = []
        self.root: Optional[int] = None

    def add_node(self, label: Symbol, token: Optional[Token] = None) -> int:
        self.nodes.append(ParseNode(label=label, token=token))
        return len(self.nodes) - 1

    def attach(self, parent: int, child: int):
        """Append child to the children of parent."""
        self.nodes[child].parent = parent
        self.nodes[parent].children.append(child)

    def label(self, index: int) -> Symbol:
        return self.nodes[index].label

    def token(self, index: int) -> Optional[Token]:
        return self.nodes[index].token

    def children(self, index: int) -> List[int]:
        return list(self.nodes[index].children)

    def parent(self, index: int) -> Optional[int]:
        return self.nodes[index].parent

    def is_leaf(self, index: int) -> bool:
        return not self.nodes[index].children and self.nodes[index].label.is_terminal

    def relabel(self, index: int, label: Symbol):
        self.nodes[index].label = label

    def detach(self, index: int):
        """Remove the subtree rooted at index from its parent."""
        parent = self.nodes[index].parent
        if parent is None:
            if index == self.root:
                self.root = None
            return
        self.nodes[parent].children.remove(index)
        self.nodes[index].parent = None

    def splice(self, index: int):
        """Replace a node by its children, in place, inside its parent."""
        parent = self.nodes[index].parent
        if parent is None:
            raise ValueError("Cannot splice the root of a parse tree")
        siblings = self.nodes[parent].children
        position = siblings.index(index)
        children = self.nodes[index].children
        siblings[position:position + 1] = children
        for child in children:
            self.nodes[child].parent = parent
        self.nodes[index].children = []
        self.nodes[index].parent = None

    def walk(self, index: Optional[int] = None) -> Iterator[int]:
        """Yield the reachable node indices in pre-order."""
        start = self.root if index is None else index
        if start is None:
            return
        stack = [start]
        while stack:
            current = stack.pop()
            yield current
            stack.extend(reversed(self.nodes[current].children))

    def find(self, label: Symbol, index: Optional[int] = None) -> List[int]:
        return [i for i in self.walk(index) if self.nodes[i].label == label]

    def leaves(self, index: Optional[int] = None) -> List[Token]:
        """Tokens of the reachable leaves, left to right."""
        return [self.nodes[i].token for i in self.walk(index) if self.is_leaf(i)]

    def __len__(self) -> int:
        return sum(1 for _ in self.walk())


class PredictiveParser:
    """
    LL(1) recursive-descent parser.

    The grammar is reduced (useless symbols, left recursion, left factoring)
    once at construction. Production selection at parse time is derived from
    the FIRST and FOLLOW sets; the materialised action table is kept for
    diagnostics (is_ll, textual dump).
    """

    def __init__(self,
                 grammar: Grammar,
                 tokens: Sequence[Token],
                 terminal_map: Optional[Mapping[str, Any]] = None,
                 config: Optional[EngineConfig] = None):
        """
        Initialize the parser.

        Args:
            grammar: Grammar of the language, before reduction
            tokens: Token stream ending with an end-of-stream marker token
            terminal_map: Terminal name to lexical unit; None when terminal names are the units
            config: Engine configuration
        """
        if not tokens:
            raise ValueError("Token stream must contain at least the end-of-stream marker")
        self.config = config or EngineConfig()
        self.grammar = reduce_grammar(grammar, self.config)
        self.action_table = ActionTable(self.grammar)
        self.first = self.action_table.first
        self.follow = self.action_table.follow
        self.tokens = list(tokens)
        self.terminal_map = terminal_map
        self.end_of_stream = self.tokens[-1].type
        self.rule_numbers = self.grammar.rule_numbers()
        self.rule_trace: List[int] = []
        self.index = 0
        self.tree = ParseTree()

    def is_ll(self, n: int) -> bool:
        return self.action_table.is_ll(n)

    def unit_of(self, symbol: Symbol) -> Any:
        """Lexical unit of a terminal symbol; None for epsilon and unmapped names."""
        if symbol.is_epsilon:
            return None
        if self.terminal_map is None:
            return symbol.name
        return self.terminal_map.get(symbol.name)

    def _current(self) -> Token:
        return self.tokens[min(self.index, len(self.tokens) - 1)]

    def _matches_any(self, members: Optional[Sequence[Symbol]], unit: Any) -> bool:
        if not members:
            return False
        return any(self.unit_of(member) == unit for member in members if not member.is_epsilon)

    def select(self, variable: Symbol, unit: Any) -> Optional[int]:
        """
        Pick the alternative of variable to apply for a lookahead unit.

        Returns:
            Index of the chosen alternative, or None if no alternative applies
        """
        alternatives = self.grammar.rules_of(variable)
        has_epsilon = EPSILON_RULE in alternatives
        if has_epsilon and self._matches_any(self.follow.get(variable), unit):
            return alternatives.index(EPSILON_RULE)
        for i, rule in enumerate(alternatives):
            if self._matches_any(self.first.get(rule[0], {rule[0]}), unit):
                return i
        if has_epsilon and unit == self.end_of_stream:
            # Input exhausted: a nullable variable closes
            return alternatives.index(EPSILON_RULE)
        return None

    def _match(self, terminal: Symbol) -> int:
        expected = self.unit_of(terminal)
        token = self._current()
        if token.type != expected:
            raise TokenMismatchError(expected, token)
        self.index += 1
        return self.tree.add_node(terminal, token)

    def _acceptable_units(self, variable: Symbol) -> List[Any]:
        units = {self.unit_of(symbol) for symbol in self.first.get(variable, ())}
        units.discard(None)
        return sorted(units, key=_unit_name)

    def _expand(self, variable: Symbol) -> Optional[Tuple[int, ProductionRule]]:
        """Apply the rule selected for variable; None when it is the epsilon rule."""
        token = self._current()
        choice = self.select(variable, token.type)
        if choice is None:
            raise NoApplicableProductionError(variable, self._acceptable_units(variable), token)

        rule_number = self.rule_numbers[variable] + choice
        self.rule_trace.append(rule_number)
        log.debug("Applying rule %d for %s at token %s", rule_number, variable, token)

        rule = self.grammar.rules_of(variable)[choice]
        if rule == EPSILON_RULE:
            return None
        return self.tree.add_node(variable), rule

    def build_parse_tree(self, variable: Symbol) -> Optional[int]:
        """
        Parse the input derived from variable and return its subtree.

        The descent runs on an explicit stack of partially expanded nodes, so
        the nesting depth of the input is not bounded by the interpreter's
        recursion limit. Rules are applied in the same left-most order as a
        recursive descent would apply them.

        Returns:
            Index of the subtree root, or None when the epsilon rule was applied
        """
        expansion = self._expand(variable)
        if expansion is None:
            return None

        root, rule = expansion
        stack: List[Tuple[int, Iterator[Symbol]]] = [(root, iter(rule))]
        while stack:
            node, symbols = stack[-1]
            symbol = next(symbols, None)
            if symbol is None:
                stack.pop()
            elif symbol in self.grammar.variables:
                expansion = self._expand(symbol)
                if expansion is not None:
                    child, child_rule = expansion
                    self.tree.attach(node, child)
                    stack.append((child, iter(child_rule)))
            else:
                self.tree.attach(node, self._match(symbol))
        return root

    def parse(self) -> ParseTree:
        """
        Parse the token stream from the start symbol.

        Returns:
            The parse tree; rule_trace holds the rule numbers applied
        """
        self.index = 0
        self.rule_trace = []
        self.tree = ParseTree()
        self.tree.root = self.build_parse_tree(self.grammar.start_symbol)
        if self.config.require_end_of_stream and self._current().type != self.end_of_stream:
            raise TokenMismatchError(self.end_of_stream, self._current())
        return self.tree
