"""Logical Tables - dynamic-schema tables with date, time and boolean fields over SQLite."""

from logical_tables.config import EngineConfig
from logical_tables.errors import (
    DataError,
    ErrorChannel,
    FieldNotFoundError,
    FilterSyntaxError,
    FormatError,
    HookError,
    ReservedTableError,
    SchemaError,
    ScriptError,
    SpecSyntaxError,
    TableExistsError,
    TableNotFoundError,
    TemplateError,
    UnknownFieldTypeError,
)
from logical_tables.filters import FilterCompiler, Predicate
from logical_tables.formats import Classification, Direction, FormatEngine, FormatSettings
from logical_tables.hooks import HookDispatcher, HookRegistry
from logical_tables.metadata import MetadataEntry, TypeMetadataStore
from logical_tables.rowset import Rowset
from logical_tables.schema import SchemaManager
from logical_tables.storage import Database
from logical_tables.table import Table
from logical_tables.types import LogicalType, PhysicalType

__all__ = [
    # Main API
    "Database",
    "Table",
    "EngineConfig",
    # Components
    "FormatEngine",
    "FormatSettings",
    "Direction",
    "Classification",
    "FilterCompiler",
    "Predicate",
    "SchemaManager",
    "TypeMetadataStore",
    "MetadataEntry",
    "Rowset",
    "HookDispatcher",
    "HookRegistry",
    # Types
    "LogicalType",
    "PhysicalType",
    # Errors
    "ScriptError",
    "ReservedTableError",
    "TableExistsError",
    "TableNotFoundError",
    "UnknownFieldTypeError",
    "SpecSyntaxError",
    "SchemaError",
    "TemplateError",
    "HookError",
    "FieldNotFoundError",
    "DataError",
    "FormatError",
    "FilterSyntaxError",
    "ErrorChannel",
]

__version__ = "0.1.0"
