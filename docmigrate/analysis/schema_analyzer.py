# ==============================================
# SchemaAnalyzer
# ==============================================
#
# PURPOSE:
#   Sample documents from a source collection and fold every
#   observed field into one CollectionSchema.
#
# CLASS: SchemaAnalyzer
# ---------------------
#   Constructor:
#   ------------
#   - __init__(document_store, type_detector=None)
#       document_store must expose: is_connected, sample_documents(),
#       list_indexes() (see storage/mongo_client.py).
#
#   Methods:
#   --------
#   - analyze(collection_name: str, sample_size: int = 100) -> CollectionSchema
#       Randomly sample up to `sample_size` documents ($sample, not the
#       first N) and analyze them. An empty collection yields a schema
#       with no fields. Raises NotConnectedError before sampling if the
#       store is not connected.
#
#   - analyze_documents(collection_name: str, documents: list[dict]) -> CollectionSchema
#       Pure part of the analysis, used directly by tests and by
#       existing-tables mode on a single sample document.
#
# WALK RULES:
# -----------
#   - Nested keys are joined with dots: {"address": {"city": ..}} → "address.city"
#   - First observation of a path sets its type and array flag.
#   - Later observations only promote NULL → concrete type.
#   - Objects are always descended into.
#   - Non-empty arrays are descended into through their first element
#     only (and only when it is an object); empty arrays are not.
#   - is_required = non-null in every sampled document.
#
# ==============================================

import logging
from typing import Any, Dict, List, Optional, Set

from docmigrate.analysis.schema import CollectionSchema, FieldDescriptor, IndexDescriptor
from docmigrate.exceptions import NotConnectedError
from docmigrate.normalization import TypeDetector, TypeTag

logger = logging.getLogger(__name__)


class SchemaAnalyzer:
    """
    Infers a field-level schema for a collection from a random sample.
    """

    def __init__(self, document_store, type_detector: TypeDetector = None):
        self.document_store = document_store
        self.type_detector = type_detector or TypeDetector()

    def analyze(self, collection_name: str, sample_size: int = 100) -> CollectionSchema:
        """
        Sample a collection and infer its schema.

        Args:
            collection_name: Source collection to analyze
            sample_size: Maximum number of documents to sample

        Returns:
            CollectionSchema with fields in first-seen order
        """
        if not self.document_store.is_connected:
            raise NotConnectedError("MongoDB")

        logger.info(f"Analyzing collection: {collection_name}")
        documents = self.document_store.sample_documents(collection_name, sample_size)

        if not documents:
            logger.warning(f"Collection {collection_name} is empty")
            return CollectionSchema(name=collection_name, fields=[])

        schema = self.analyze_documents(collection_name, documents)
        schema.indexes = self._read_indexes(collection_name)

        logger.info(
            f"Inferred {len(schema.fields)} fields for {collection_name} "
            f"from {len(documents)} sampled documents"
        )
        return schema

    def analyze_documents(self, collection_name: str, documents: List[dict]) -> CollectionSchema:
        """
        Fold a list of documents into a CollectionSchema.

        Args:
            collection_name: Name stored on the resulting schema
            documents: Sampled documents

        Returns:
            CollectionSchema (indexes left empty)
        """
        fields: Dict[str, FieldDescriptor] = {}
        non_null_counts: Dict[str, int] = {}

        for document in documents:
            seen_non_null: Set[str] = set()
            self._analyze_document(document, fields, seen_non_null)
            for path in seen_non_null:
                non_null_counts[path] = non_null_counts.get(path, 0) + 1

        total = len(documents)
        for path, descriptor in fields.items():
            descriptor.is_required = total > 0 and non_null_counts.get(path, 0) == total

        return CollectionSchema(name=collection_name, fields=list(fields.values()))

    def _analyze_document(
        self,
        document: dict,
        fields: Dict[str, FieldDescriptor],
        seen_non_null: Set[str],
        prefix: str = "",
    ) -> None:
        """
        Walk one document (or nested object) and record every path.

        Args:
            document: The document or sub-object to walk
            fields: Accumulated descriptors, keyed by dotted path
            seen_non_null: Paths holding a non-null value in this document
            prefix: Dotted path of `document` itself
        """
        for key, value in document.items():
            path = self._flatten_key(prefix, str(key))
            detected = self.type_detector.detect(value)

            descriptor = fields.get(path)
            if descriptor is None:
                descriptor = FieldDescriptor(
                    name=path,
                    type=detected,
                    is_array=detected == TypeTag.ARRAY,
                )
                fields[path] = descriptor
            elif detected != TypeTag.NULL and descriptor.type == TypeTag.NULL:
                descriptor.type = detected

            if detected != TypeTag.NULL:
                seen_non_null.add(path)

            if detected == TypeTag.OBJECT:
                self._analyze_document(value, fields, seen_non_null, path)

            elif detected == TypeTag.ARRAY and len(value) > 0:
                descriptor.is_array = True
                first_item = value[0]
                if self.type_detector.detect(first_item) == TypeTag.OBJECT:
                    self._analyze_document(first_item, fields, seen_non_null, path)

    def _read_indexes(self, collection_name: str) -> List[IndexDescriptor]:
        indexes = []
        for index in self.document_store.list_indexes(collection_name):
            name = index.get("name")
            if name == "_id_":
                continue
            indexes.append(IndexDescriptor(
                fields=list(index.get("key", {}).keys()),
                unique=bool(index.get("unique", False)),
                name=name,
            ))
        return indexes

    def _flatten_key(self, prefix: str, key: str) -> str:
        """
        Combine a prefix with a key using dot notation.

        Examples:
            _flatten_key("", "username") → "username"
            _flatten_key("address", "city") → "address.city"
        """
        if not prefix:
            return key
        return f"{prefix}.{key}"


def leaf_fields(schema: CollectionSchema) -> List[FieldDescriptor]:
    """
    Fields that get their own relational column.

    Skips objects that have recorded children (their children are
    columns instead) and anything nested under an array (the array
    itself is stored whole).
    """
    names = schema.field_names()
    array_paths = [f.name for f in schema.fields if f.is_array]
    leaves = []
    for descriptor in schema.fields:
        prefix = descriptor.name + "."
        if any(other.startswith(prefix) for other in names):
            if not descriptor.is_array:
                continue
        if any(descriptor.name.startswith(array_path + ".") for array_path in array_paths):
            continue
        leaves.append(descriptor)
    return leaves


def get_nested_value(document: Any, path: str) -> Optional[Any]:
    """Follow a dotted path through nested mappings; None when any step is missing."""
    current = document
    for part in path.split("."):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return None
    return current
