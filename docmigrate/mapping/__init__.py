# ==============================================
# MAPPING
# ==============================================
#
# How source fields land in destination columns.
#
# Modules:
# --------
# - type_mapper.py      → TypeTag / RelationalType / MySQL type conversions
# - mapping_resolver.py → Source field → destination column mapping
#
# ==============================================

from .type_mapper import TypeMapper
from .mapping_resolver import IDENTIFIER_FIELD, MappingResolver

__all__ = ["TypeMapper", "MappingResolver", "IDENTIFIER_FIELD"]
