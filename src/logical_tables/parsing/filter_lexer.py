"""Lexer for per-field filter expressions such as ``>=01.01.2024&<=31.12.2024``."""

import ply.lex as lex

from logical_tables.errors import FilterSyntaxError


class FilterLexer:
    """Lexer for tokenizing filter expressions."""

    tokens = [
        "OP",
        "AND",
        "OR",
        "VALUE",
    ]

    t_AND = r"&"
    t_OR = r"\|"

    t_ignore = " \t"

    def __init__(self) -> None:
        self.lexer: lex.LexToken = None  # type: ignore

    # Must come before t_VALUE: a clause may start with a comparison prefix
    def t_OP(self, t: lex.LexToken) -> lex.LexToken:
        r"==|~=|>=|<=|>|<"
        return t

    def t_VALUE(self, t: lex.LexToken) -> lex.LexToken:
        r"[^&|\s][^&|]*"
        t.value = t.value.strip()
        return t

    def t_error(self, t: lex.LexToken) -> None:
        raise FilterSyntaxError(f"Illegal character '{t.value[0]}' at position {t.lexpos}")

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        self.lexer = lex.lex(module=self, **kwargs)

    def input(self, data: str) -> None:
        """Set the input string to tokenize."""
        self.lexer.input(data)

    def token(self) -> lex.LexToken | None:
        """Return the next token."""
        return self.lexer.token()

    def tokenize(self, data: str) -> list[lex.LexToken]:
        """Tokenize the input and return all tokens."""
        self.input(data)
        tokens = []
        while True:
            tok = self.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens
