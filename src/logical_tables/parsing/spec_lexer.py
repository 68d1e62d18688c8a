"""Lexer for the field-specification and alter DSLs.

Both DSLs share one shape: entries separated by ``|``, each entry a list of
``key::value`` pairs separated by ``;``::

    n::Name;t::Text;l::100|n::Born;t::Date
    drop::Notes|add::Closed;t::Boolean
"""

import ply.lex as lex

from logical_tables.errors import SpecSyntaxError


class SpecLexer:
    """Lexer for tokenizing field specifications."""

    tokens = [
        "KEY",
        "ASSIGN",
        "VALUE",
        "SEMICOLON",
        "PIPE",
    ]

    # After '::' everything up to the next separator is the value
    states = (("value", "exclusive"),)

    t_SEMICOLON = r";"
    t_PIPE = r"\|"

    t_ignore = " \t\r\n"

    def __init__(self) -> None:
        self.lexer: lex.LexToken = None  # type: ignore

    def t_ASSIGN(self, t: lex.LexToken) -> lex.LexToken:
        r"::"
        t.lexer.begin("value")
        return t

    def t_KEY(self, t: lex.LexToken) -> lex.LexToken:
        r"[A-Za-z_][A-Za-z0-9_]*"
        return t

    def t_error(self, t: lex.LexToken) -> None:
        raise SpecSyntaxError(f"Illegal character '{t.value[0]}' at position {t.lexpos}")

    # --- Exclusive value state tokens ---

    t_value_ignore = " \t"

    def t_value_VALUE(self, t: lex.LexToken) -> lex.LexToken:
        r"[^;|]+"
        t.value = t.value.strip()
        t.lexer.begin("INITIAL")
        return t

    def t_value_SEMICOLON(self, t: lex.LexToken) -> lex.LexToken:
        r";"
        t.lexer.begin("INITIAL")
        return t

    def t_value_PIPE(self, t: lex.LexToken) -> lex.LexToken:
        r"\|"
        t.lexer.begin("INITIAL")
        return t

    def t_value_error(self, t: lex.LexToken) -> None:
        t.lexer.begin("INITIAL")
        raise SpecSyntaxError(f"Illegal character '{t.value[0]}' at position {t.lexpos}")

    # --- Lexer methods ---

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        self.lexer = lex.lex(module=self, **kwargs)

    def input(self, data: str) -> None:
        """Set the input string to tokenize."""
        self.lexer.begin("INITIAL")
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
