# ==============================================
# ANALYSIS
# ==============================================
#
# Observe sampled documents and describe them as a schema.
#
# Modules:
# --------
# - schema.py          → Data classes for schemas, columns, mappings, results
# - schema_analyzer.py → Sample a collection, fold observations into a schema
#
# ==============================================

from .schema import (
    CollectionSchema,
    ColumnDescriptor,
    ColumnMapping,
    ColumnReference,
    FieldDescriptor,
    IndexDescriptor,
    MigrationResult,
    RelationalType,
    TableRelationship,
)
from .schema_analyzer import SchemaAnalyzer, get_nested_value, leaf_fields

__all__ = [
    "CollectionSchema",
    "ColumnDescriptor",
    "ColumnMapping",
    "ColumnReference",
    "FieldDescriptor",
    "IndexDescriptor",
    "MigrationResult",
    "RelationalType",
    "TableRelationship",
    "SchemaAnalyzer",
    "get_nested_value",
    "leaf_fields",
]
