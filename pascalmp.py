"""
PascalMP Grammar

The grammar of the small PascalMP language, the lexical units produced by
its scanner, and the map bridging the grammar's terminal spellings to those
lexical units.
"""

from enum import Enum
from typing import Dict

from grammar_model import Grammar


class LexicalUnit(Enum):
    """Token types of the PascalMP scanner."""
    BEG = "begin"
    END = "end"
    DOTS = "..."
    VARNAME = "[VarName]"
    ASSIGN = ":="
    NUMBER = "[Number]"
    LPAREN = "("
    RPAREN = ")"
    LBRACK = "{"
    RBRACK = "}"
    MINUS = "-"
    PLUS = "+"
    TIMES = "*"
    DIVIDE = "/"
    IF = "if"
    THEN = "then"
    ELSE = "else"
    AND = "and"
    OR = "or"
    EQUAL = "="
    SMALLER = "<"
    WHILE = "while"
    DO = "do"
    PRINT = "print"
    READ = "read"
    EOS = "$"


TERMINAL_MAP: Dict[str, LexicalUnit] = {
    unit.value: unit for unit in LexicalUnit if unit is not LexicalUnit.EOS
}

VARIABLES = [
    "<Program>",
    "<Code>",
    "<InstList>",
    "<EndInstList>",
    "<Instruction>",
    "<Assign>",
    "<ExprArith>",
    "<T>", "<U>",
    "<If>",
    "<EndIf>",
    "<Cond>",
    "<V>", "<W>",
    "<SimpleCond>",
    "<Comp>",
    "<While>",
    "<Print>",
    "<Read>",
]

RULES = {
    "<Program>": [["begin", "<Code>", "end"]],
    "<Code>": [[""], ["<InstList>"]],
    "<InstList>": [["<Instruction>"], ["<Instruction>", "...", "<InstList>"]],
    # <For> has no rules: the alternative is removed as unproductive
    "<Instruction>": [["<Assign>"], ["<If>"], ["<While>"], ["<For>"], ["<Print>"], ["<Read>"],
                      ["begin", "<InstList>", "end"]],
    "<Assign>": [["[VarName]", ":=", "<ExprArith>"]],
    "<ExprArith>": [["<ExprArith>", "+", "<T>"], ["<ExprArith>", "-", "<T>"], ["<T>"]],
    "<T>": [["<T>", "*", "<U>"], ["<T>", "/", "<U>"], ["<U>"]],
    "<U>": [["[VarName]"], ["[Number]"], ["(", "<ExprArith>", ")"], ["-", "<U>"]],
    "<If>": [["if", "<Cond>", "then", "<Instruction>", "else"],
             ["if", "<Cond>", "then", "<Instruction>", "else", "<Instruction>"]],
    "<Cond>": [["<Cond>", "or", "<V>"], ["<V>"]],
    "<V>": [["<V>", "and", "<W>"], ["<W>"]],
    "<W>": [["{", "<Cond>", "}"], ["<SimpleCond>"]],
    "<SimpleCond>": [["<ExprArith>", "<Comp>", "<ExprArith>"]],
    "<Comp>": [["="], ["<"]],
    "<While>": [["while", "<Cond>", "do", "<Instruction>"]],
    "<Print>": [["print", "(", "[VarName]", ")"]],
    "<Read>": [["read", "(", "[VarName]", ")"]],
}


def pascalmp_grammar() -> Grammar:
    """Build the raw PascalMP grammar with <Program> as start symbol."""
    return Grammar.build(
        variables=VARIABLES,
        terminals=TERMINAL_MAP.keys(),
        rules=RULES,
        start_symbol="<Program>",
        order=VARIABLES,
    )
