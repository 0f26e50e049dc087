"""Query execution package."""

from household_ledger.models.queries import LedgerQuery, LedgerQueryResult
from household_ledger.queries.executor import LedgerQueryExecutor, QueryExecutionError

__all__ = ["LedgerQuery", "LedgerQueryExecutor", "LedgerQueryResult", "QueryExecutionError"]
