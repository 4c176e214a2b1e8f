"""
Database Adapter Protocol.

The collaborators in this package only use the PostgREST query builder
pattern of the Supabase client: table() returns a query builder, rpc()
calls stored procedures. Anything satisfying this protocol (including a
MagicMock in tests) can be injected where a client is accepted.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class DatabaseAdapter(Protocol):
    """
    Abstract database access.

    table() must return a builder supporting .select(), .eq(), .in_(),
    .order(), .execute() and friends; execute() yields an object with .data.
    """

    def table(self, name: str) -> Any:
        """Return a query builder for the given table."""
        ...

    def rpc(self, function_name: str, params: dict) -> Any:
        """Call a stored procedure / database function."""
        ...
