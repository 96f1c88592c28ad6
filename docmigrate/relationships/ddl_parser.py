# ==============================================
# DDLParser
# ==============================================
#
# PURPOSE:
#   Recover foreign-key relationships from a relational
#   schema-definition script (CREATE TABLE / ALTER TABLE text)
#   without parsing the whole language.
#
# CLASS: DDLParser
# ----------------
#   Stateless.
#
#   Methods:
#   --------
#   - parse_relationships(ddl_text: str) -> list[TableRelationship]
#       1. Strip "--" line comments and "/* */" block comments,
#          collapse whitespace runs to one space.
#       2. Match both constraint forms on the cleaned text:
#            FOREIGN KEY (col) REFERENCES ref_table (ref_col)
#            col <type ...> REFERENCES ref_table (ref_col)
#       3. Resolve each match's owning table by scanning back to the
#          nearest CREATE TABLE / ALTER TABLE header. Matches with no
#          header before them are dropped.
#       Results follow source order. Duplicates are kept.
#       Never raises; unmatched input returns [].
#
#   - strip_comments(ddl_text: str) -> str
#   - split_statements(ddl_text: str) -> list[str]
#       Comment-free statements, for executing a script.
#   - table_names(ddl_text: str) -> list[str]
#       Tables created by the script, in order of appearance.
#
# ==============================================

import bisect
import logging
import re
from typing import List, Optional, Tuple

from docmigrate.analysis.schema import TableRelationship

logger = logging.getLogger(__name__)

# Bare, double-quoted, backtick-quoted or bracketed identifier
_IDENT = r'(?:`[^`]*`|"[^"]*"|\[[^\]]*\]|[\w.$]+)'

_LINE_COMMENT = re.compile(r'--[^\n]*')
_BLOCK_COMMENT = re.compile(r'/\*.*?\*/', re.DOTALL)
_WHITESPACE = re.compile(r'\s+')

_TABLE_HEADER = re.compile(
    r'\b(?:CREATE\s+(?:TEMPORARY\s+|TEMP\s+)?TABLE|ALTER\s+TABLE)\s+'
    r'(?:IF\s+(?:NOT\s+)?EXISTS\s+)?(?:ONLY\s+)?'
    r'(' + _IDENT + r')',
    re.IGNORECASE,
)

_CREATE_TABLE = re.compile(
    r'\bCREATE\s+(?:TEMPORARY\s+|TEMP\s+)?TABLE\s+(?:IF\s+NOT\s+EXISTS\s+)?(' + _IDENT + r')',
    re.IGNORECASE,
)

_FOREIGN_KEY = re.compile(
    r'\bFOREIGN\s+KEY\s*(?:' + _IDENT + r'\s*)?'
    r'\(\s*([^)]+?)\s*\)\s*'
    r'REFERENCES\s+(' + _IDENT + r')\s*'
    r'\(\s*([^)]+?)\s*\)',
    re.IGNORECASE,
)

_CONSTRAINT_KEYWORDS = r'(?:FOREIGN|CONSTRAINT|PRIMARY|UNIQUE|KEY|INDEX|CHECK|REFERENCES)\b'

_INLINE_REFERENCES = re.compile(
    r'(?:[(,]|\bADD\s+(?:COLUMN\s+)?)\s*'
    r'(?!' + _CONSTRAINT_KEYWORDS + r')'
    r'(' + _IDENT + r')\s+'
    r'[^,()]*?(?:\([^()]*\)[^,()]*?)*?'
    r'\bREFERENCES\s+(' + _IDENT + r')\s*'
    r'\(\s*([^)]+?)\s*\)',
    re.IGNORECASE,
)

_QUOTE_CHARS = '`"[]'


def _unquote(identifier: str) -> str:
    return identifier.strip().strip(_QUOTE_CHARS)


def _unquote_list(identifiers: str) -> str:
    """Unquote each name of a (possibly composite) column list."""
    return ", ".join(_unquote(part) for part in identifiers.split(","))


class DDLParser:
    """
    Extracts table relationships from a schema-definition script.
    """

    def parse_relationships(self, ddl_text: str) -> List[TableRelationship]:
        """
        Parse a schema script into relationship edges.

        Args:
            ddl_text: Raw script text (comments allowed)

        Returns:
            TableRelationship list in source order, duplicates included
        """
        if not ddl_text:
            return []

        cleaned = self.clean(ddl_text)
        headers = self._table_headers(cleaned)
        header_offsets = [offset for offset, _ in headers]

        found: List[Tuple[int, TableRelationship]] = []

        for match in _FOREIGN_KEY.finditer(cleaned):
            relationship = self._build(
                headers, header_offsets, match.start(),
                column=_unquote_list(match.group(1)),
                referenced_table=_unquote(match.group(2)),
                referenced_column=_unquote_list(match.group(3)),
            )
            if relationship:
                found.append((match.start(), relationship))

        for match in _INLINE_REFERENCES.finditer(cleaned):
            relationship = self._build(
                headers, header_offsets, match.start(1),
                column=_unquote(match.group(1)),
                referenced_table=_unquote(match.group(2)),
                referenced_column=_unquote_list(match.group(3)),
            )
            if relationship:
                found.append((match.start(1), relationship))

        found.sort(key=lambda item: item[0])
        relationships = [relationship for _, relationship in found]

        logger.info(f"Parsed {len(relationships)} table relationships from schema script")
        for rel in relationships:
            logger.debug(
                f"Relationship: {rel.table_name}.{rel.column_name} -> "
                f"{rel.referenced_table}.{rel.referenced_column}"
            )
        return relationships

    @staticmethod
    def strip_comments(ddl_text: str) -> str:
        """Remove line comments first, then block comments."""
        without_lines = _LINE_COMMENT.sub('', ddl_text)
        return _BLOCK_COMMENT.sub('', without_lines)

    def clean(self, ddl_text: str) -> str:
        """Comment-free text with every whitespace run collapsed to one space."""
        return _WHITESPACE.sub(' ', self.strip_comments(ddl_text)).strip()

    def split_statements(self, ddl_text: str) -> List[str]:
        if not ddl_text:
            return []
        statements = self.strip_comments(ddl_text).split(';')
        return [statement.strip() for statement in statements if statement.strip()]

    def table_names(self, ddl_text: str) -> List[str]:
        if not ddl_text:
            return []
        names: List[str] = []
        for match in _CREATE_TABLE.finditer(self.clean(ddl_text)):
            name = _unquote(match.group(1))
            if name not in names:
                names.append(name)
        return names

    def _table_headers(self, cleaned: str) -> List[Tuple[int, str]]:
        return [(m.start(), _unquote(m.group(1))) for m in _TABLE_HEADER.finditer(cleaned)]

    def _build(
        self,
        headers: List[Tuple[int, str]],
        header_offsets: List[int],
        offset: int,
        column: str,
        referenced_table: str,
        referenced_column: str,
    ) -> Optional[TableRelationship]:
        table_name = self._owning_table(headers, header_offsets, offset)
        if table_name is None:
            logger.debug(f"Dropping constraint on {column} with no preceding table header")
            return None
        return TableRelationship(
            table_name=table_name,
            referenced_table=referenced_table,
            column_name=column,
            referenced_column=referenced_column,
        )

    @staticmethod
    def _owning_table(
        headers: List[Tuple[int, str]],
        header_offsets: List[int],
        offset: int,
    ) -> Optional[str]:
        """Name of the last table header that starts before `offset`."""
        position = bisect.bisect_left(header_offsets, offset)
        if position == 0:
            return None
        return headers[position - 1][1]
