"""Timeout-bounded access to the Cassandra session.

Services never call ``session.aexecute`` directly: going through
``execute`` guarantees every store call is bounded by
``CASSANDRA_REQUEST_TIMEOUT`` and that driver failures surface as
``StoreUnavailableError`` (retryable) or ``InternalError`` instead of
leaking driver details to callers.
"""

import asyncio
from collections.abc import Sequence
from typing import Any

from cassandra import DriverException, OperationTimedOut, RequestExecutionException
from cassandra.cluster import NoHostAvailable

from src.config.settings import get_settings
from src.core.exceptions import InternalError, StoreUnavailableError
from src.core.logging import get_logger


logger = get_logger(__name__)

# Unavailable, ReadTimeout, WriteTimeout and friends all mean "try again later"
_TRANSIENT_ERRORS = (NoHostAvailable, OperationTimedOut, RequestExecutionException)


async def execute(
    session: Any,
    statement: Any,
    params: Sequence[Any] | None = None,
    timeout: float | None = None,
) -> Any:
    """Run one statement and return its result set.

    Args:
        session: Cassandra session exposing ``aexecute``.
        statement: Prepared statement or CQL string.
        params: Bind values.
        timeout: Seconds to wait; defaults to the configured request timeout.

    Raises:
        StoreUnavailableError: On timeout or when no replica can serve the call.
        InternalError: On any other driver error (bad query, schema mismatch).
    """
    limit = timeout if timeout is not None else get_settings().cassandra_request_timeout
    query = getattr(statement, "query_string", None) or str(statement)
    try:
        if params is None:
            return await asyncio.wait_for(session.aexecute(statement), timeout=limit)
        return await asyncio.wait_for(
            session.aexecute(statement, params), timeout=limit
        )
    except TimeoutError as e:
        logger.warning("store_call_timed_out", timeout=limit, query=query[:120])
        raise StoreUnavailableError from e
    except _TRANSIENT_ERRORS as e:
        logger.warning(
            "store_call_unavailable",
            error_type=type(e).__name__,
            error=str(e),
            query=query[:120],
        )
        raise StoreUnavailableError from e
    except DriverException as e:
        logger.error(
            "store_call_failed",
            error_type=type(e).__name__,
            error=str(e),
            query=query[:120],
        )
        raise InternalError from e


def was_applied(result: Any) -> bool:
    """Whether a conditional (``IF ...``) write was applied."""
    return bool(result.was_applied)
