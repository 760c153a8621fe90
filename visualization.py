"""
Visualization and Output Formatting Module

This module provides visualization and formatting capabilities for the LL(1)
front end, including HTML action table generation, DOT, LaTeX and plain-text
parse tree output, rule trace formatting, and syntax error reports.
"""

from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass
import html

from grammar_model import Grammar, rule_to_string
from ll_analysis import ActionTable, LLConflict
from ll_parser import ParseError, ParseTree, TokenMismatchError, NoApplicableProductionError


@dataclass
class VisualizationConfig:
    """Configuration options for visualization output."""
    table_css_classes: str = "parse-table"
    trace_css_classes: str = "parsing-trace"
    error_css_classes: str = "error-message"
    include_inline_styles: bool = True
    compact_mode: bool = False
    show_token_values: bool = True


def _node_label(tree: ParseTree, index: int, show_token_values: bool = True) -> str:
    """Label of a parse tree node: the token value for leaves, the symbol otherwise."""
    token = tree.token(index)
    if token is not None and show_token_values and token.value is not None:
        return str(token.value)
    return str(tree.label(index))


def render_tree_text(tree: ParseTree, show_token_values: bool = True) -> str:
    """
    Render a parse tree as indented text, one node per line.

    Args:
        tree: Parse tree arena
        show_token_values: Show the consumed token values instead of terminal names

    Returns:
        Text with two spaces of indentation per level
    """
    if tree.root is None:
        return ""
    lines = []
    stack: List[Tuple[int, int]] = [(tree.root, 0)]
    while stack:
        index, depth = stack.pop()
        lines.append("  " * depth + _node_label(tree, index, show_token_values))
        for child in reversed(tree.children(index)):
            stack.append((child, depth + 1))
    return "\n".join(lines)


class HTMLTableGenerator:
    """Generates HTML tables for LL action tables."""

    def __init__(self, config: Optional[VisualizationConfig] = None):
        self.config = config or VisualizationConfig()

    def generate_action_table_html(self, table: ActionTable) -> str:
        """
        Generate an HTML table for an LL action table.

        Rows are the variables in display order, columns the terminals sorted
        by name, and each cell lists the numbers of the predicted rules.

        Args:
            table: ActionTable object

        Returns:
            HTML string containing the action table
        """
        variables = table.grammar.display_order()
        terminals = table.sorted_terminals()
        if not variables or not terminals:
            return self._generate_empty_table_html("No action table entries found")

        html_lines = []
        if self.config.include_inline_styles:
            html_lines.append(self._generate_table_styles())

        html_lines.append(f'<table class="grammar-table {self.config.table_css_classes}" role="table" aria-label="LL(1) Action Table">')
        html_lines.append('<thead>')
        html_lines.append('<tr>')
        html_lines.append('<th class="grammar-table-header grammar-table-header-primary" scope="col">Variable</th>')
        for terminal in terminals:
            html_lines.append(f'<th class="grammar-table-header" scope="col">{html.escape(terminal.name)}</th>')
        html_lines.append('</tr>')
        html_lines.append('</thead>')

        html_lines.append('<tbody>')
        for variable in variables:
            html_lines.append('<tr>')
            html_lines.append(f'<th class="grammar-table-cell grammar-table-cell-primary" scope="row">{html.escape(variable.name)}</th>')
            for terminal in terminals:
                numbers = table.cell_numbers(variable, terminal)
                html_lines.append(f'<td class="grammar-table-cell">{self._format_cell(numbers)}</td>')
            html_lines.append('</tr>')
        html_lines.append('</tbody>')
        html_lines.append('</table>')

        return '\n'.join(html_lines)

    def _format_cell(self, numbers: List[int]) -> str:
        if not numbers:
            return ''
        if len(numbers) > 1:
            parts = [f'<span class="conflict-action">{number}</span>' for number in numbers]
            return '<span class="grammar-action-conflict">' + ' / '.join(parts) + '</span>'
        return f'<span class="grammar-action-predict">{numbers[0]}</span>'

    def _generate_empty_table_html(self, message: str) -> str:
        return f'<div class="{self.config.error_css_classes}">\n<p>{html.escape(message)}</p>\n</div>'

    def _generate_table_styles(self) -> str:
        """Generate inline CSS styles for the table."""
        return """
<style>
.parse-table {
    border-collapse: collapse;
    font-family: 'Courier New', monospace;
    font-size: 12px;
}

.parse-table th, .parse-table td {
    border: 1px solid #374151;
    padding: 6px 10px;
    text-align: center;
}

.grammar-action-conflict {
    background-color: #dc2626;
    color: #fecaca;
    padding: 2px 6px;
    border-radius: 4px;
    font-weight: bold;
}
</style>
"""


class DOTGenerator:
    """Generates DOT format output for parse trees."""

    def __init__(self, config: Optional[VisualizationConfig] = None):
        self.config = config or VisualizationConfig()

    def generate_parse_tree_dot(self, tree: Optional[ParseTree], title: str = "Parse Tree") -> str:
        """
        Generate a DOT representation of a parse tree.

        Node identifiers are the arena indices, so the same node keeps the
        same name across renderings of an edited tree.

        Args:
            tree: Parse tree arena
            title: Title for the graph

        Returns:
            DOT format string
        """
        if tree is None or tree.root is None:
            return self._generate_empty_tree_dot(title, "Parse tree is empty")

        lines = []
        lines.append(f'digraph "{self._escape_dot_string(title)}" {{')
        lines.append('  rankdir=TB;')
        lines.append('  node [fontname="Arial", fontsize=12];')
        lines.append('  edge [color="#333333"];')

        for index in tree.walk():
            label = self._escape_dot_string(_node_label(tree, index, self.config.show_token_values))
            if tree.is_leaf(index):
                lines.append(f'  node{index} [label="{label}", shape=box, style=filled, fillcolor="#e3f2fd", fontname="Courier New"];')
            else:
                lines.append(f'  node{index} [label="{label}", shape=ellipse, style=filled, fillcolor="#e8f5e8"];')
            for child in tree.children(index):
                lines.append(f'  node{index} -> node{child};')

        lines.append('}')
        return '\n'.join(lines)

    def _generate_empty_tree_dot(self, title: str, message: str) -> str:
        lines = []
        lines.append(f'digraph "{self._escape_dot_string(title)}" {{')
        lines.append(f'  empty [label="{self._escape_dot_string(message)}", shape=box, color=red];')
        lines.append('}')
        return '\n'.join(lines)

    def _escape_dot_string(self, text: str) -> str:
        """Escape a string for use in DOT format."""
        if not text:
            return ""
        text = str(text)
        text = text.replace('\\', '\\\\')
        text = text.replace('"', '\\"')
        text = text.replace('\n', '\\n')
        return text


class LatexTreeGenerator:
    """Generates LaTeX derivation trees for the forest package."""

    _SPECIAL = {
        '\\': r'\textbackslash{}', '{': r'\{', '}': r'\}', '$': r'\$', '&': r'\&',
        '#': r'\#', '%': r'\%', '_': r'\_', '^': r'\^{}', '~': r'\~{}',
        '<': r'\textless{}', '>': r'\textgreater{}', '[': '{[}', ']': '{]}',
    }

    def __init__(self, config: Optional[VisualizationConfig] = None):
        self.config = config or VisualizationConfig()

    def generate(self, tree: ParseTree) -> str:
        """
        Generate a forest environment for a parse tree.

        Returns:
            LaTeX source, empty if the tree has no root
        """
        if tree.root is None:
            return ""
        rendered: Dict[int, str] = {}
        # Reversed pre-order visits every child before its parent
        for index in reversed(list(tree.walk())):
            label = self._escape(_node_label(tree, index, self.config.show_token_values))
            children = " ".join(rendered.pop(child) for child in tree.children(index))
            rendered[index] = f"[{{{label}}} {children}]" if children else f"[{{{label}}}]"
        return "\\begin{forest}\n" + rendered[tree.root] + "\n\\end{forest}"

    def _escape(self, text: str) -> str:
        return "".join(self._SPECIAL.get(character, character) for character in text)


class RuleTraceFormatter:
    """Formats the sequence of applied rules as HTML."""

    def __init__(self, config: Optional[VisualizationConfig] = None):
        self.config = config or VisualizationConfig()

    def generate_trace_html(self, rule_trace: List[int], grammar: Grammar,
                            title: str = "Applied Rules") -> str:
        """
        Generate an HTML table listing the applied rules in order.

        Args:
            rule_trace: Rule numbers in application order
            grammar: Reduced grammar the numbers refer to
            title: Title for the trace

        Returns:
            HTML string with one row per applied rule
        """
        if not rule_trace:
            return f'<div class="{self.config.error_css_classes}">\n<p>No rules applied</p>\n</div>'

        productions: Dict[int, str] = {
            number: f"{lhs} -> {rule_to_string(rule)}" for number, lhs, rule in grammar.numbered_rules()
        }

        html_lines = []
        html_lines.append(f'<div class="{self.config.trace_css_classes}">')
        html_lines.append(f'<h3>{html.escape(title)}</h3>')
        if self.config.compact_mode:
            html_lines.append(f'<p class="rule-trace">{" ".join(str(n) for n in rule_trace)}</p>')
        else:
            html_lines.append('<table class="grammar-table trace-table" role="table" aria-label="Applied rules">')
            html_lines.append('<thead>')
            html_lines.append('<tr>')
            html_lines.append('<th class="grammar-table-header grammar-table-header-primary" scope="col">Step</th>')
            html_lines.append('<th class="grammar-table-header" scope="col">Rule</th>')
            html_lines.append('<th class="grammar-table-header" scope="col">Production</th>')
            html_lines.append('</tr>')
            html_lines.append('</thead>')
            html_lines.append('<tbody>')
            for step, number in enumerate(rule_trace, 1):
                production = html.escape(productions.get(number, ''))
                html_lines.append(f'<tr><td class="grammar-table-cell step-number">{step}</td>'
                                  f'<td class="grammar-table-cell">{number}</td>'
                                  f'<td class="grammar-table-cell production">{production}</td></tr>')
            html_lines.append('</tbody>')
            html_lines.append('</table>')
        html_lines.append('</div>')

        return '\n'.join(html_lines)


class ErrorMessageFormatter:
    """Formats syntax errors and grammar conflicts with proper styling."""

    def __init__(self, config: Optional[VisualizationConfig] = None):
        self.config = config or VisualizationConfig()

    def format_parse_error(self, error: ParseError) -> str:
        """
        Format a syntax error as HTML.

        Args:
            error: TokenMismatchError or NoApplicableProductionError

        Returns:
            Formatted HTML error message
        """
        html_lines = []
        html_lines.append(f'<div class="{self.config.error_css_classes}">')
        html_lines.append('<h4>Syntax Error</h4>')
        if isinstance(error, TokenMismatchError):
            html_lines.append(f'<p><strong>Expected:</strong> {html.escape(self._unit(error.expected))}</p>')
        elif isinstance(error, NoApplicableProductionError):
            acceptable = ', '.join(self._unit(unit) for unit in error.acceptable)
            html_lines.append(f'<p><strong>While parsing:</strong> {html.escape(str(error.variable))}</p>')
            html_lines.append(f'<p><strong>Acceptable:</strong> {html.escape(acceptable)}</p>')
        token = error.token
        html_lines.append(f'<p><strong>Found:</strong> {html.escape(self._unit(token.type))} '
                          f'<code>{html.escape(str(token.value))}</code> '
                          f'at line {token.line}, column {token.column}</p>')
        html_lines.append('</div>')
        return '\n'.join(html_lines)

    def format_conflict_report(self, conflicts: List[LLConflict]) -> str:
        """
        Format LL(1) conflicts as HTML.

        Args:
            conflicts: List of LLConflict objects

        Returns:
            Formatted HTML conflict report
        """
        if not conflicts:
            return '<div class="no-conflicts">No conflicts detected in the grammar.</div>'

        html_lines = []
        html_lines.append('<div class="conflict-report">')
        html_lines.append(f'<h4>Grammar Conflicts ({len(conflicts)} found)</h4>')
        for i, conflict in enumerate(conflicts, 1):
            html_lines.append('<div class="conflict-item">')
            html_lines.append(f'<h5>Conflict {i}</h5>')
            html_lines.append(f'<p><strong>Variable:</strong> {html.escape(str(conflict.variable))}</p>')
            html_lines.append(f'<p><strong>Lookahead:</strong> {html.escape(str(conflict.terminal))}</p>')
            html_lines.append('<ul>')
            for number, rule in zip(conflict.rule_numbers, conflict.rules):
                html_lines.append(f'<li>[{number}] {html.escape(rule_to_string(rule))}</li>')
            html_lines.append('</ul>')
            html_lines.append('</div>')
        html_lines.append('</div>')
        return '\n'.join(html_lines)

    @staticmethod
    def _unit(unit) -> str:
        return getattr(unit, 'name', str(unit))


class VisualizationGenerator:
    """Main visualization generator that combines all formatting capabilities."""

    def __init__(self, config: Optional[VisualizationConfig] = None):
        self.config = config or VisualizationConfig()
        self.table_generator = HTMLTableGenerator(self.config)
        self.dot_generator = DOTGenerator(self.config)
        self.latex_generator = LatexTreeGenerator(self.config)
        self.trace_formatter = RuleTraceFormatter(self.config)
        self.error_formatter = ErrorMessageFormatter(self.config)

    def generate_grammar_report(self, table: ActionTable) -> Dict[str, str]:
        """Generate the action table and conflict report of a grammar."""
        return {
            'table_html': self.table_generator.generate_action_table_html(table),
            'conflicts_html': self.error_formatter.format_conflict_report(table.conflicts()),
        }

    def generate_parse_report(self, tree: ParseTree, rule_trace: List[int], grammar: Grammar) -> Dict[str, str]:
        """Generate every rendering of a parse result."""
        return {
            'tree_dot': self.dot_generator.generate_parse_tree_dot(tree),
            'tree_text': render_tree_text(tree, self.config.show_token_values),
            'tree_latex': self.latex_generator.generate(tree),
            'trace_html': self.trace_formatter.generate_trace_html(rule_trace, grammar),
        }
