# ==============================================
# MappingResolver
# ==============================================
#
# PURPOSE:
#   Decide which source field goes into which destination column
#   when a collection is copied into a table that already exists
#   (or into a table laid out by the advisor).
#
# CLASS: MappingResolver
# ----------------------
#   Stateless.
#
#   Methods:
#   --------
#   - resolve(source_fields, destination_columns, advisor_hint=None)
#         -> list[ColumnMapping]
#       A non-empty advisor_hint is returned as-is (checking it against
#       the live table is the migration engine's job). Otherwise the
#       deterministic fallback is used.
#
#   - fallback(source_fields, destination_columns) -> list[ColumnMapping]
#       1. "_id" → identifier column: first key (unique/primary)
#          column whose canonical name contains "id", preferring
#          text-typed columns.
#       2. Every other field, by canonical path ("a.b" → "a_b"):
#          exact canonical match with a column.
#       3. Still unmatched fields: first column (declaration order)
#          whose canonical name contains the field's, or vice versa.
#       4. Anything else is left out.
#       A column is given to at most one field. Auto-increment
#       columns are never targets. Objects whose sub-fields are also
#       listed are represented by those sub-fields.
#       Output: identifier mapping first, then source field order.
#
#   - identifier_column(destination_columns) -> ColumnDescriptor | None
#
# ==============================================

import logging
from typing import Dict, List, Optional, Sequence

from docmigrate.analysis.schema import ColumnDescriptor, ColumnMapping, RelationalType
from docmigrate.normalization import canonicalize

logger = logging.getLogger(__name__)

IDENTIFIER_FIELD = "_id"

_TEXT_TYPES = (RelationalType.TEXT, RelationalType.VARCHAR)


class MappingResolver:
    """
    Maps source field paths onto destination columns.
    """

    def resolve(
        self,
        source_fields: Sequence[str],
        destination_columns: Sequence[ColumnDescriptor],
        advisor_hint: Optional[Sequence[ColumnMapping]] = None,
    ) -> List[ColumnMapping]:
        if advisor_hint:
            logger.debug(f"Using {len(advisor_hint)} advisor-suggested column mappings")
            return list(advisor_hint)
        return self.fallback(source_fields, destination_columns)

    def fallback(
        self,
        source_fields: Sequence[str],
        destination_columns: Sequence[ColumnDescriptor],
    ) -> List[ColumnMapping]:
        fields = list(dict.fromkeys(source_fields))
        columns = [column for column in destination_columns if not column.auto_increment]
        column_keys = [canonicalize(column.name) for column in columns]
        claimed = set()

        mappings: List[ColumnMapping] = []

        id_column = self.identifier_column(columns)
        if id_column is not None and IDENTIFIER_FIELD in fields:
            mappings.append(ColumnMapping(
                source_field=IDENTIFIER_FIELD,
                destination_column=id_column.name,
                transformation="stringify identifier",
            ))
            claimed.add(id_column.name)

        candidates = [
            name for name in fields
            if name != IDENTIFIER_FIELD and canonicalize(name) and not self._has_children(name, fields)
        ]

        matched: Dict[str, ColumnMapping] = {}

        # Exact canonical matches take their columns first
        for name in candidates:
            key = canonicalize(name)
            for column, column_key in zip(columns, column_keys):
                if column.name not in claimed and column_key == key:
                    matched[name] = ColumnMapping(source_field=name, destination_column=column.name)
                    claimed.add(column.name)
                    break

        for name in candidates:
            if name in matched:
                continue
            key = canonicalize(name)
            for column, column_key in zip(columns, column_keys):
                if column.name in claimed or not column_key:
                    continue
                if column_key in key or key in column_key:
                    matched[name] = ColumnMapping(
                        source_field=name,
                        destination_column=column.name,
                        transformation="partial name match",
                    )
                    claimed.add(column.name)
                    break

        mappings.extend(matched[name] for name in candidates if name in matched)

        dropped = [name for name in candidates if name not in matched]
        if dropped:
            logger.debug(f"No destination column for fields: {', '.join(dropped)}")

        return mappings

    def identifier_column(self, destination_columns: Sequence[ColumnDescriptor]) -> Optional[ColumnDescriptor]:
        keys = [
            column for column in destination_columns
            if not column.auto_increment and column.is_key and "id" in canonicalize(column.name)
        ]
        for column in keys:
            if column.type in _TEXT_TYPES:
                return column
        return keys[0] if keys else None

    @staticmethod
    def _has_children(name: str, fields: List[str]) -> bool:
        prefix = name + "."
        return any(other.startswith(prefix) for other in fields)
