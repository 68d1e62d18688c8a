"""Parser for the field-specification and alter DSLs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import ply.yacc as yacc

from logical_tables.errors import SpecSyntaxError
from logical_tables.parsing.spec_lexer import SpecLexer


@dataclass
class SpecEntry:
    """One ``|``-separated entry: its ``key::value`` pairs in order of appearance."""

    pairs: list[tuple[str, str]] = field(default_factory=list)

    def get(self, key: str, default: str | None = None) -> str | None:
        """Return the value of the last pair with *key*."""
        for k, v in reversed(self.pairs):
            if k == key:
                return v
        return default

    def keys(self) -> list[str]:
        return [k for k, _ in self.pairs]


class SpecParser:
    """Parser for ``key::value;...|...`` specifications."""

    tokens = SpecLexer.tokens

    def __init__(self) -> None:
        self.lexer = SpecLexer()
        self.lexer.build()
        self.parser: yacc.LRParser = None  # type: ignore

    def p_spec(self, p: yacc.YaccProduction) -> None:
        """spec : entry_list"""
        p[0] = [entry for entry in p[1] if entry.pairs]

    def p_entry_list_single(self, p: yacc.YaccProduction) -> None:
        """entry_list : entry"""
        p[0] = [p[1]]

    def p_entry_list_multiple(self, p: yacc.YaccProduction) -> None:
        """entry_list : entry_list PIPE entry"""
        p[0] = p[1]
        p[0].append(p[3])

    def p_entry(self, p: yacc.YaccProduction) -> None:
        """entry : pair_list"""
        p[0] = SpecEntry(pairs=p[1])

    def p_entry_empty(self, p: yacc.YaccProduction) -> None:
        """entry : empty"""
        p[0] = SpecEntry()

    def p_pair_list_single(self, p: yacc.YaccProduction) -> None:
        """pair_list : pair"""
        p[0] = [p[1]]

    def p_pair_list_multiple(self, p: yacc.YaccProduction) -> None:
        """pair_list : pair_list SEMICOLON pair"""
        p[0] = p[1]
        p[0].append(p[3])

    def p_pair_list_trailing(self, p: yacc.YaccProduction) -> None:
        """pair_list : pair_list SEMICOLON"""
        p[0] = p[1]

    def p_pair(self, p: yacc.YaccProduction) -> None:
        """pair : KEY ASSIGN VALUE"""
        p[0] = (p[1], p[3])

    def p_pair_no_value(self, p: yacc.YaccProduction) -> None:
        """pair : KEY ASSIGN"""
        p[0] = (p[1], "")

    def p_empty(self, p: yacc.YaccProduction) -> None:
        """empty :"""
        p[0] = None

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise SpecSyntaxError(f"Syntax error at '{p.value}' (position {p.lexpos})")
        else:
            raise SpecSyntaxError("Syntax error at end of input")

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, start="spec", **kwargs)

    def parse(self, data: str) -> list[SpecEntry]:
        """Parse a specification into its non-empty entries."""
        if self.parser is None:
            self.build(debug=False, write_tables=False)

        self.lexer.lexer.begin("INITIAL")
        return self.parser.parse(data, lexer=self.lexer.lexer)
