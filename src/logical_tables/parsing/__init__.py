"""Parsing module for the field-specification and filter DSLs."""

from logical_tables.parsing.filter_parser import FilterClause, FilterParser
from logical_tables.parsing.spec_parser import SpecEntry, SpecParser

__all__ = [
    "FilterClause",
    "FilterParser",
    "SpecEntry",
    "SpecParser",
]
