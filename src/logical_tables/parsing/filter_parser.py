"""Parser for per-field filter expressions.

An expression is a flat sequence of clauses joined by ``&`` (AND) or ``|``
(OR). Clauses keep their order of appearance; there is no grouping.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import ply.yacc as yacc

from logical_tables.errors import FilterSyntaxError
from logical_tables.parsing.filter_lexer import FilterLexer


@dataclass
class FilterClause:
    """A single comparison of a filter expression."""

    value: str
    operator: str | None = None  # ==, ~=, >=, <=, >, < or None when no prefix was given
    connector: str | None = None  # AND / OR joining this clause to the previous one


class FilterParser:
    """Parser for filter expressions."""

    tokens = FilterLexer.tokens

    def __init__(self) -> None:
        self.lexer = FilterLexer()
        self.lexer.build()
        self.parser: yacc.LRParser = None  # type: ignore

    def p_expression_single(self, p: yacc.YaccProduction) -> None:
        """expression : clause"""
        p[0] = [p[1]]

    def p_expression_and(self, p: yacc.YaccProduction) -> None:
        """expression : expression AND clause"""
        p[3].connector = "AND"
        p[0] = p[1]
        p[0].append(p[3])

    def p_expression_or(self, p: yacc.YaccProduction) -> None:
        """expression : expression OR clause"""
        p[3].connector = "OR"
        p[0] = p[1]
        p[0].append(p[3])

    def p_clause_with_operator(self, p: yacc.YaccProduction) -> None:
        """clause : OP VALUE"""
        p[0] = FilterClause(value=p[2], operator=p[1])

    def p_clause(self, p: yacc.YaccProduction) -> None:
        """clause : VALUE"""
        p[0] = FilterClause(value=p[1])

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise FilterSyntaxError(f"Syntax error at '{p.value}' (position {p.lexpos})")
        else:
            raise FilterSyntaxError("Syntax error at end of filter")

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, start="expression", **kwargs)

    def parse(self, data: str) -> list[FilterClause]:
        """Parse a filter expression into its clauses."""
        if self.parser is None:
            self.build(debug=False, write_tables=False)

        return self.parser.parse(data, lexer=self.lexer.lexer)
