# ==============================================
# docmigrate
# ==============================================
#
# Copy MongoDB collections into MySQL tables, inferring or
# reconciling the relational schema along the way.
#
# Subpackages:
# ------------
# - normalization/  → Value type tags, canonical identifiers
# - analysis/       → Schema data classes, sampling analyzer
# - relationships/  → Schema-script parsing, table insertion order
# - mapping/        → Type mapping, field → column mapping
# - storage/        → MongoDB / MySQL clients
# - advisor/        → Optional model-backed suggestions
#
# Modules:
# --------
# - migration_engine.py → Runs a migration end to end
# - config.py           → Env/.env configuration
# - logger.py           → Logging setup
# - exceptions.py       → Error taxonomy
# - cli.py              → `docmigrate` command
#
# USAGE:
# ------
#   from docmigrate import migrate
#   result = migrate()
#   print(result.to_dict())
#
# ==============================================

__version__ = "0.1.0"


def migrate(config=None):
    """
    Run one migration with the given (or environment) configuration.

    Args:
        config: Optional AppConfig. If None, loads from environment.

    Returns:
        MigrationResult
    """
    from docmigrate.migration_engine import MigrationEngine

    return MigrationEngine(config).migrate()
