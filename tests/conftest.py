import pytest

from grammar_model import GrammarReader
from ll_parser import Token
from pascalmp import LexicalUnit


def make_tokens(*types, end="$"):
    """Tokens whose value is their type, followed by the end-of-stream marker."""
    tokens = [Token(type=t, value=t, line=1, column=i + 1) for i, t in enumerate(types)]
    tokens.append(Token(type=end, value=end, line=1, column=len(types) + 1))
    return tokens


@pytest.fixture
def expression_grammar():
    return GrammarReader().read("E -> E + T | T")


@pytest.fixture
def prefix_grammar():
    return GrammarReader().read("S -> a b | a c")


@pytest.fixture
def assignment_tokens():
    """begin x := 5 end, as produced by the PascalMP scanner."""
    return [
        Token(LexicalUnit.BEG, "begin", 1, 1),
        Token(LexicalUnit.VARNAME, "x", 1, 7),
        Token(LexicalUnit.ASSIGN, ":=", 1, 9),
        Token(LexicalUnit.NUMBER, "5", 1, 12),
        Token(LexicalUnit.END, "end", 1, 14),
        Token(LexicalUnit.EOS, "$", 1, 17),
    ]
