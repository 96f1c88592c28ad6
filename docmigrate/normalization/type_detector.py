# ==============================================
# TypeDetector
# ==============================================
#
# PURPOSE:
#   Classify a single document value (as returned by pymongo)
#   into a semantic TypeTag. Pure and total: every input maps
#   to exactly one tag and detection never raises.
#
# RULES (in priority order):
# --------------------------
#   1. None                          → null
#   2. ObjectId (24 hex chars)       → objectId
#      str                           → string
#   3. bool                          → boolean   (checked before int,
#                                                 bool is an int subclass)
#   4. int / float / Decimal /
#      Decimal128                    → number
#   5. datetime / date / Timestamp   → date
#   6. list / tuple                  → array
#   7. Mapping (dict, SON)           → object
#   8. bytes / Binary                → binary
#   9. anything else                 → string
#
# ==============================================

import re
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from bson import Binary, Decimal128, ObjectId, Timestamp


class TypeTag(Enum):
    """Semantic type of a document field."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    OBJECT_ID = "objectId"
    OBJECT = "object"
    ARRAY = "array"
    NULL = "null"
    BINARY = "binary"


class TypeDetector:
    OBJECT_ID_PATTERN = re.compile(r'^[a-fA-F0-9]{24}$')

    @classmethod
    def detect(cls, value: Any) -> TypeTag:
        if value is None:
            return TypeTag.NULL

        if isinstance(value, ObjectId):
            if cls.is_object_id_text(str(value)):
                return TypeTag.OBJECT_ID
            return TypeTag.STRING

        if isinstance(value, str):
            return TypeTag.STRING

        if isinstance(value, bool):
            return TypeTag.BOOLEAN

        if isinstance(value, (int, float, Decimal, Decimal128)):
            return TypeTag.NUMBER

        if isinstance(value, (datetime, date, Timestamp)):
            return TypeTag.DATE

        if isinstance(value, (list, tuple)):
            return TypeTag.ARRAY

        if isinstance(value, Mapping):
            return TypeTag.OBJECT

        if isinstance(value, (bytes, bytearray, Binary)):
            return TypeTag.BINARY

        return TypeTag.STRING

    @classmethod
    def is_object_id_text(cls, value: str) -> bool:
        return bool(cls.OBJECT_ID_PATTERN.match(value))
