# ==============================================
# STORAGE
# ==============================================
#
# Connections to the source document store and the
# destination relational store.
#
# Modules:
# --------
# - mongo_client.py → MongoDB reads (sample, page, count)
# - mysql_client.py → MySQL DDL, introspection and idempotent inserts
#
# ==============================================

from .mongo_client import MongoClient
from .mysql_client import MySQLClient, build_rows, to_sql_value

__all__ = ["MongoClient", "MySQLClient", "build_rows", "to_sql_value"]
