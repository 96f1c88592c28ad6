# ==============================================
# Exceptions
# ==============================================
#
# PURPOSE:
#   Error taxonomy for a migration run.
#
#   Run-fatal (raised out of MigrationEngine.migrate):
#     - StoreConnectionError  → a store could not be reached
#     - SchemaScriptError     → schema script could not be executed
#                               (generate-tables mode only)
#     - NotConnectedError     → a store was used before connect()
#
#   Per-collection (caught at the collection boundary and
#   recorded as a string in MigrationResult.errors):
#     - CollectionAnalysisError
#     - CollectionMigrationError
#     - DestinationWriteError
#
#   Never escapes its component:
#     - AdvisorError          → degrades to the deterministic fallback
#
# ==============================================


class MigrationError(Exception):
    """
    Base exception for all migration errors
    """
    pass


class ConfigurationError(MigrationError):
    """
    Raised when run configuration is invalid
    """
    pass


class NotConnectedError(MigrationError):
    """
    Raised when a store client is used before connect()
    """

    def __init__(self, store: str):
        super().__init__(f"Not connected to {store}")
        self.store = store


class StoreConnectionError(MigrationError):
    """
    Raised when a connection to a store cannot be established
    """

    def __init__(self, store: str, reason: str):
        super().__init__(f"Could not connect to {store}: {reason}")
        self.store = store
        self.reason = reason


class SchemaScriptError(MigrationError):
    """
    Raised when a schema script cannot be read or executed
    """
    pass


class CollectionAnalysisError(MigrationError):
    """
    Raised when a collection's schema cannot be inferred
    """
    pass


class CollectionMigrationError(MigrationError):
    """
    Raised when copying a collection fails
    """
    pass


class DestinationWriteError(MigrationError):
    """
    Raised when rows cannot be written to a destination table
    """

    def __init__(self, table_name: str, reason: str):
        super().__init__(f"Failed to write rows into {table_name}: {reason}")
        self.table_name = table_name
        self.reason = reason


class AdvisorError(MigrationError):
    """
    Raised inside the advisor when a suggestion cannot be obtained
    """
    pass
