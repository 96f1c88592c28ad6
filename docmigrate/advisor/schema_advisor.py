# ==============================================
# SchemaAdvisor
# ==============================================
#
# PURPOSE:
#   Optional, best-effort oracle backed by an OpenAI-compatible
#   chat-completions endpoint. It can propose a table layout for a
#   collection, a field → column mapping for an existing table, and
#   a free-text analysis of relationships between collections.
#
#   The advisor is never required: without an API key every method
#   returns None without any I/O, and every failure (transport,
#   HTTP status, missing content, bad JSON) also yields None.
#
# CLASS: SchemaAdvisor
# --------------------
#   Constructor:
#   ------------
#   - __init__(api_key=None, model="gpt-4o-mini",
#              base_url="https://api.openai.com/v1", timeout=30.0)
#
#   Methods:
#   --------
#   - is_enabled -> bool   (property)
#   - propose_table_schema(schema) -> list[ColumnDescriptor] | None
#   - propose_column_mapping(sample_document, table_name, columns)
#         -> list[ColumnMapping] | None
#   - analyze_relationships(schemas) -> str | None
#
# ==============================================

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import requests

from docmigrate.analysis.schema import (
    CollectionSchema,
    ColumnDescriptor,
    ColumnMapping,
)
from docmigrate.exceptions import AdvisorError
from docmigrate.mapping import TypeMapper
from docmigrate.normalization import canonicalize

logger = logging.getLogger(__name__)

SCHEMA_SYSTEM_PROMPT = (
    "You are a database migration expert. Provide concise, practical "
    "suggestions for MongoDB to MySQL schema mapping."
)
MAPPING_SYSTEM_PROMPT = (
    "You are a data mapping expert. Provide practical field mappings for database migration."
)
RELATIONSHIP_SYSTEM_PROMPT = (
    "You are a database design expert. Analyze collection relationships for migration planning."
)


class SchemaAdvisor:
    """
    Thin client around a chat-completions endpoint.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 30.0,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        if self.is_enabled:
            logger.info(f"Schema advisor enabled (model {self.model})")
        else:
            logger.info("Schema advisor disabled - no API key provided")

    @classmethod
    def from_config(cls, advisor_config) -> "SchemaAdvisor":
        return cls(
            api_key=advisor_config.api_key,
            model=advisor_config.model,
            base_url=advisor_config.base_url,
            timeout=advisor_config.timeout_seconds,
        )

    @property
    def is_enabled(self) -> bool:
        return bool(self.api_key)

    # ------------------------------------------
    # Suggestions
    # ------------------------------------------

    def propose_table_schema(self, schema: CollectionSchema) -> Optional[List[ColumnDescriptor]]:
        """
        Ask for a destination table layout for one collection.

        Args:
            schema: Inferred schema of the source collection

        Returns:
            Proposed columns (canonical names, known types), or None
        """
        if not self.is_enabled:
            return None

        logger.info(f"Asking advisor for a table layout for collection: {schema.name}")
        prompt = (
            "Analyze this MongoDB collection schema and suggest the best MySQL table structure.\n\n"
            f"Collection: {schema.name}\n"
            f"Fields: {json.dumps([f.to_dict() for f in schema.fields], indent=2)}\n\n"
            "Respond in JSON format with the following structure:\n"
            '{"tableName": "suggested_table_name", "columns": [{"name": "column_name", '
            '"type": "MYSQL_TYPE", "nullable": true, "primaryKey": false, "unique": false}]}'
        )

        try:
            suggestion = self._chat_json(SCHEMA_SYSTEM_PROMPT, prompt)
        except AdvisorError as e:
            logger.warning(f"Advisor could not propose a table for {schema.name}: {e}")
            return None

        columns = self._parse_columns(suggestion.get("columns"))
        if not columns:
            logger.warning(f"Advisor proposed no usable columns for {schema.name}")
            return None

        logger.debug(f"Advisor proposed {len(columns)} columns for {schema.name}")
        return columns

    def propose_column_mapping(
        self,
        sample_document: Dict[str, Any],
        table_name: str,
        columns: Sequence[ColumnDescriptor],
    ) -> Optional[List[ColumnMapping]]:
        """
        Ask how a sample document's fields map onto an existing table.

        Args:
            sample_document: One document from the source collection
            table_name: Destination table
            columns: Live columns of the destination table

        Returns:
            Suggested mappings, or None
        """
        if not self.is_enabled:
            return None

        logger.info(f"Asking advisor for a column mapping for table: {table_name}")
        column_summary = ", ".join(
            f"{c.name} ({c.type.value}, nullable: {str(c.nullable).lower()})" for c in columns
        )
        prompt = (
            "Given this MongoDB document sample and MySQL table schema, suggest how to map "
            "MongoDB fields to MySQL columns. Use dotted paths for nested fields and map the "
            "_id field to the table's unique identifier column.\n\n"
            f"MongoDB Document Sample:\n{json.dumps(sample_document, indent=2, default=str)}\n\n"
            f"MySQL Table Schema:\nTable: {table_name}\nColumns: {column_summary}\n\n"
            "Respond in JSON format:\n"
            '{"mappings": [{"mongoField": "mongodb_field_name", "column": "mysql_column_name", '
            '"transformation": "optional_transformation_description"}]}'
        )

        try:
            result = self._chat_json(MAPPING_SYSTEM_PROMPT, prompt)
        except AdvisorError as e:
            logger.warning(f"Advisor could not map columns for {table_name}: {e}")
            return None

        mappings = self._parse_mappings(result.get("mappings"))
        if not mappings:
            return None

        logger.debug(f"Advisor suggested {len(mappings)} column mappings for {table_name}")
        return mappings

    def analyze_relationships(self, schemas: Sequence[CollectionSchema]) -> Optional[str]:
        """Free-text analysis of references between collections."""
        if not self.is_enabled or not schemas:
            return None

        logger.info("Asking advisor to analyze relationships between collections")
        described = "\n".join(
            f"Collection: {schema.name}\n"
            f"Fields: {', '.join(f'{f.name} ({f.type.value})' for f in schema.fields)}"
            for schema in schemas
        )
        prompt = (
            "Analyze these MongoDB collection schemas and identify potential relationships:\n\n"
            f"{described}\n\n"
            "Identify:\n"
            "1. Foreign key relationships (ObjectId references)\n"
            "2. One-to-many relationships\n"
            "3. Many-to-many relationships\n"
            "4. Embedded vs. referenced data patterns\n\n"
            "Suggest how to maintain these relationships in MySQL."
        )

        try:
            return self._chat(RELATIONSHIP_SYSTEM_PROMPT, prompt, json_mode=False)
        except AdvisorError as e:
            logger.warning(f"Advisor relationship analysis failed: {e}")
            return None

    # ------------------------------------------
    # Transport
    # ------------------------------------------

    def _chat(self, system_prompt: str, prompt: str, json_mode: bool = True) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt},
            ],
            "temperature": 0.1,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        try:
            response = requests.post(
                f"{self.base_url}/chat/completions",
                headers={"Authorization": f"Bearer {self.api_key}"},
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
            body = response.json()
        except requests.exceptions.RequestException as e:
            raise AdvisorError(f"request failed: {e}") from e
        except ValueError as e:
            raise AdvisorError(f"response is not JSON: {e}") from e

        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = None
        if not content:
            raise AdvisorError("no content in response")
        return content

    def _chat_json(self, system_prompt: str, prompt: str) -> Dict[str, Any]:
        content = self._chat(system_prompt, prompt, json_mode=True)
        try:
            parsed = json.loads(content)
        except ValueError as e:
            raise AdvisorError(f"could not parse response as JSON: {e}") from e
        if not isinstance(parsed, dict):
            raise AdvisorError("response is not a JSON object")
        return parsed

    @staticmethod
    def _parse_columns(raw_columns: Any) -> List[ColumnDescriptor]:
        if not isinstance(raw_columns, list):
            return []
        columns: List[ColumnDescriptor] = []
        seen = set()
        for entry in raw_columns:
            if not isinstance(entry, dict) or not entry.get("name"):
                continue
            name = canonicalize(str(entry["name"]))
            if name in seen:
                continue
            seen.add(name)
            primary_key = bool(entry.get("primaryKey", False))
            columns.append(ColumnDescriptor(
                name=name,
                type=TypeMapper.parse(str(entry.get("type") or "")),
                nullable=bool(entry.get("nullable", True)) and not primary_key,
                primary_key=primary_key,
                unique=bool(entry.get("unique", False)),
            ))
        return columns

    @staticmethod
    def _parse_mappings(raw_mappings: Any) -> List[ColumnMapping]:
        if not isinstance(raw_mappings, list):
            return []
        mappings: List[ColumnMapping] = []
        for entry in raw_mappings:
            if not isinstance(entry, dict):
                continue
            source = entry.get("mongoField") or entry.get("sourceField")
            column = (
                entry.get("column")
                or entry.get("destinationColumn")
                or entry.get("postgresColumn")
            )
            if not source or not column:
                continue
            mappings.append(ColumnMapping(
                source_field=str(source),
                destination_column=str(column),
                transformation=entry.get("transformation") or None,
            ))
        return mappings
