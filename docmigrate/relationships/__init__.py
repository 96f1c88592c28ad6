# ==============================================
# RELATIONSHIPS
# ==============================================
#
# Foreign keys declared in a schema script, and the table
# insertion order they imply.
#
# Modules:
# --------
# - ddl_parser.py          → Extract TableRelationship edges from script text
# - dependency_resolver.py → Topologically order tables over those edges
#
# ==============================================

from .ddl_parser import DDLParser
from .dependency_resolver import DependencyResolver

__all__ = ["DDLParser", "DependencyResolver"]
