"""Helpers for Cassandra lightweight transactions (LWT).

Every conditional write in the ledger (``IF NOT EXISTS``, ``IF status = ?``)
goes through :func:`execute_conditional` so that an unresolved Paxos round is
reported the same way everywhere.
"""

from typing import Any

import structlog
from cassandra import WriteTimeout, WriteType

from edumarket.core.exceptions import ConflictError


logger = structlog.get_logger(__name__)


async def execute_conditional(session: Any, statement: Any, params: list[Any]) -> Any:
    """Execute an LWT statement and return its result set.

    The caller inspects ``result.was_applied`` and, when the condition failed,
    ``result.one()`` for the current row values.

    Raises:
        ConflictError: If the coordinator timed out during the CAS phase, so
            the outcome of the write is unknown.
    """
    try:
        return await session.aexecute(statement, params)
    except WriteTimeout as e:
        if e.write_type != WriteType.CAS:
            raise
        logger.warning("conditional_write_timeout", error=str(e))
        raise ConflictError(
            "Concurrent update could not be resolved, retry the request"
        ) from e
