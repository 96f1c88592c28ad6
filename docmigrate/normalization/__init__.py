# ==============================================
# NORMALIZATION
# ==============================================
#
# Value- and name-level helpers shared by every other topic.
#
# Modules:
# --------
# - type_detector.py → Classify a document value into a TypeTag
# - identifier.py    → Canonical relational identifiers
#
# ==============================================

from .type_detector import TypeDetector, TypeTag
from .identifier import MAX_IDENTIFIER_LENGTH, canonicalize, with_suffix

__all__ = ["MAX_IDENTIFIER_LENGTH", "TypeDetector", "TypeTag", "canonicalize", "with_suffix"]
