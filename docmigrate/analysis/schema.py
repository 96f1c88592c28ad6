# ==============================================
# Schema (Data Classes)
# ==============================================
#
# PURPOSE:
#   Data classes shared by analysis, relationship parsing,
#   mapping and the migration engine.
#
# ENUMS:
# ------
# - RelationalType(Enum): TEXT, VARCHAR, INTEGER, BIGINT, DECIMAL,
#       DOUBLE, BOOLEAN, DATETIME, DATE, JSON, BLOB
#
# CLASSES:
# --------
# - FieldDescriptor      → one dotted field path observed in a collection
# - IndexDescriptor      → one secondary index on a collection
# - CollectionSchema     → inferred schema of one source collection
# - ColumnReference      → target of a foreign key
# - ColumnDescriptor     → one destination column
# - TableRelationship    → "table_name depends on referenced_table"
# - ColumnMapping        → source field → destination column
# - MigrationResult      → accumulator returned by a migration run
#
# ==============================================

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from docmigrate.normalization.type_detector import TypeTag


class RelationalType(Enum):
    """Column type in the relational store."""
    TEXT = "TEXT"
    VARCHAR = "VARCHAR"
    INTEGER = "INTEGER"
    BIGINT = "BIGINT"
    DECIMAL = "DECIMAL"
    DOUBLE = "DOUBLE"
    BOOLEAN = "BOOLEAN"
    DATETIME = "DATETIME"
    DATE = "DATE"
    JSON = "JSON"
    BLOB = "BLOB"


@dataclass
class FieldDescriptor:
    """
    A single field observed while sampling a collection.

    `type` may only be upgraded from NULL to a concrete tag while
    sampling; once analysis of the collection completes it is final.
    """
    name: str  # Dotted path, e.g. "address.city"
    type: TypeTag
    is_array: bool = False
    is_required: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type.value,
            "is_array": self.is_array,
            "is_required": self.is_required,
        }


@dataclass
class IndexDescriptor:
    fields: List[str]
    unique: bool = False
    name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"fields": list(self.fields), "unique": self.unique, "name": self.name}


@dataclass
class CollectionSchema:
    """Schema inferred for one source collection."""
    name: str
    fields: List[FieldDescriptor] = field(default_factory=list)
    indexes: List[IndexDescriptor] = field(default_factory=list)

    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    def get_field(self, name: str) -> Optional[FieldDescriptor]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "fields": [f.to_dict() for f in self.fields],
            "indexes": [i.to_dict() for i in self.indexes],
        }


@dataclass(frozen=True)
class ColumnReference:
    table: str
    column: str


@dataclass
class ColumnDescriptor:
    """A column of a destination table."""
    name: str
    type: RelationalType = RelationalType.TEXT
    nullable: bool = True
    primary_key: bool = False
    unique: bool = False
    references: Optional[ColumnReference] = None
    auto_increment: bool = False  # Generated by the store, never written to

    @property
    def is_key(self) -> bool:
        return self.primary_key or self.unique

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "name": self.name,
            "type": self.type.value,
            "nullable": self.nullable,
            "primary_key": self.primary_key,
            "unique": self.unique,
            "auto_increment": self.auto_increment,
        }
        if self.references:
            data["references"] = {
                "table": self.references.table,
                "column": self.references.column,
            }
        return data


@dataclass(frozen=True)
class TableRelationship:
    """Directed edge: `table_name` must be populated after `referenced_table`."""
    table_name: str
    referenced_table: str
    column_name: str
    referenced_column: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "table_name": self.table_name,
            "referenced_table": self.referenced_table,
            "column_name": self.column_name,
            "referenced_column": self.referenced_column,
        }


@dataclass(frozen=True)
class ColumnMapping:
    """Copy `source_field` (dotted path or "_id") into `destination_column`."""
    source_field: str
    destination_column: str
    transformation: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source_field": self.source_field,
            "destination_column": self.destination_column,
            "transformation": self.transformation,
        }


@dataclass
class MigrationResult:
    """
    Outcome of one migration run. Only the migration engine mutates it.
    """
    success: bool = False
    migrated_collections: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    total_documents: int = 0
    migration_time: float = 0.0  # seconds

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "migrated_collections": list(self.migrated_collections),
            "errors": list(self.errors),
            "total_documents": self.total_documents,
            "migration_time": round(self.migration_time, 3),
        }
