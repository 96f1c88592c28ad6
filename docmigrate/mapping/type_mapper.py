# ==============================================
# TypeMapper
# ==============================================
#
# PURPOSE:
#   Translate between document TypeTags, RelationalType tags
#   and concrete MySQL column types.
#
# CLASS: TypeMapper
# -----------------
#   Stateless, classmethods only.
#
#   - relational_type(tag: TypeTag, is_array=False) -> RelationalType
#   - sql_type(rel_type: RelationalType) -> str
#       DDL type used when creating a column.
#   - from_mysql(data_type: str, column_type: str = "") -> RelationalType
#       INFORMATION_SCHEMA.COLUMNS DATA_TYPE/COLUMN_TYPE → RelationalType.
#   - parse(type_name: str) -> RelationalType
#       Free-form type names (as suggested by the advisor, possibly in
#       another SQL dialect) → RelationalType. Unknown → TEXT.
#
# ==============================================

import re

from docmigrate.analysis.schema import RelationalType
from docmigrate.normalization import TypeTag


class TypeMapper:
    TAG_TO_RELATIONAL = {
        TypeTag.STRING: RelationalType.TEXT,
        TypeTag.NUMBER: RelationalType.DOUBLE,
        TypeTag.BOOLEAN: RelationalType.BOOLEAN,
        TypeTag.DATE: RelationalType.DATETIME,
        TypeTag.OBJECT_ID: RelationalType.VARCHAR,
        TypeTag.OBJECT: RelationalType.JSON,
        TypeTag.ARRAY: RelationalType.JSON,
        TypeTag.BINARY: RelationalType.BLOB,
        TypeTag.NULL: RelationalType.TEXT,
    }

    SQL_TYPES = {
        RelationalType.TEXT: "TEXT",
        RelationalType.VARCHAR: "VARCHAR(255)",
        RelationalType.INTEGER: "INT",
        RelationalType.BIGINT: "BIGINT",
        RelationalType.DECIMAL: "DECIMAL(38,10)",
        RelationalType.DOUBLE: "DOUBLE",
        RelationalType.BOOLEAN: "BOOLEAN",
        RelationalType.DATETIME: "DATETIME(6)",
        RelationalType.DATE: "DATE",
        RelationalType.JSON: "JSON",
        RelationalType.BLOB: "LONGBLOB",
    }

    # Also covers PostgreSQL spellings, which the advisor tends to produce
    NAME_TO_RELATIONAL = {
        "text": RelationalType.TEXT,
        "tinytext": RelationalType.TEXT,
        "mediumtext": RelationalType.TEXT,
        "longtext": RelationalType.TEXT,
        "string": RelationalType.TEXT,
        "varchar": RelationalType.VARCHAR,
        "character varying": RelationalType.VARCHAR,
        "char": RelationalType.VARCHAR,
        "character": RelationalType.VARCHAR,
        "uuid": RelationalType.VARCHAR,
        "int": RelationalType.INTEGER,
        "integer": RelationalType.INTEGER,
        "int4": RelationalType.INTEGER,
        "smallint": RelationalType.INTEGER,
        "mediumint": RelationalType.INTEGER,
        "serial": RelationalType.INTEGER,
        "bigint": RelationalType.BIGINT,
        "int8": RelationalType.BIGINT,
        "bigserial": RelationalType.BIGINT,
        "decimal": RelationalType.DECIMAL,
        "numeric": RelationalType.DECIMAL,
        "double": RelationalType.DOUBLE,
        "double precision": RelationalType.DOUBLE,
        "float": RelationalType.DOUBLE,
        "real": RelationalType.DOUBLE,
        "boolean": RelationalType.BOOLEAN,
        "bool": RelationalType.BOOLEAN,
        "datetime": RelationalType.DATETIME,
        "timestamp": RelationalType.DATETIME,
        "timestamptz": RelationalType.DATETIME,
        "timestamp with time zone": RelationalType.DATETIME,
        "timestamp without time zone": RelationalType.DATETIME,
        "date": RelationalType.DATE,
        "json": RelationalType.JSON,
        "jsonb": RelationalType.JSON,
        "blob": RelationalType.BLOB,
        "tinyblob": RelationalType.BLOB,
        "mediumblob": RelationalType.BLOB,
        "longblob": RelationalType.BLOB,
        "binary": RelationalType.BLOB,
        "varbinary": RelationalType.BLOB,
        "bytea": RelationalType.BLOB,
    }

    @classmethod
    def relational_type(cls, tag: TypeTag, is_array: bool = False) -> RelationalType:
        if is_array:
            return RelationalType.JSON
        return cls.TAG_TO_RELATIONAL.get(tag, RelationalType.TEXT)

    @classmethod
    def sql_type(cls, rel_type: RelationalType) -> str:
        return cls.SQL_TYPES.get(rel_type, "TEXT")

    @classmethod
    def from_mysql(cls, data_type: str, column_type: str = "") -> RelationalType:
        # MySQL reports BOOLEAN columns as tinyint(1)
        if (column_type or "").lower().startswith("tinyint(1)"):
            return RelationalType.BOOLEAN
        if (data_type or "").lower() == "tinyint":
            return RelationalType.INTEGER
        return cls.parse(data_type)

    @classmethod
    def parse(cls, type_name: str) -> RelationalType:
        if not type_name:
            return RelationalType.TEXT
        text = str(type_name).strip().lower()
        if text.endswith("[]"):
            return RelationalType.JSON
        base = re.sub(r'\(.*$', '', text).strip()
        base = re.sub(r'\s+unsigned$', '', base)
        return cls.NAME_TO_RELATIONAL.get(base, RelationalType.TEXT)
