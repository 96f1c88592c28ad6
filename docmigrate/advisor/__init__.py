# ==============================================
# ADVISOR
# ==============================================
#
# Optional model-backed suggestions for table layouts and
# column mappings. Absent or failing advice is never fatal.
#
# Modules:
# --------
# - schema_advisor.py → Chat-completions client returning suggestions or None
#
# ==============================================

from .schema_advisor import SchemaAdvisor

__all__ = ["SchemaAdvisor"]
