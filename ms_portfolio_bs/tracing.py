from typing import Any, Awaitable, Callable

from opentelemetry import trace

# Get tracer for database operations
tracer = trace.get_tracer(__name__)


async def trace_database_call(
    operation_name: str,
    collection_name: str,
    operation_func: Callable[[], Awaitable[Any]],
    enabled: bool = False,
    db_name: str = "portfolio_db",
    **extra_attributes
) -> Any:
    """
    Run a store coroutine, wrapped in an OpenTelemetry span when tracing is enabled.

    Args:
        operation_name: Name of the database operation (e.g. "find_by_id", "insert_many")
        collection_name: Name of the MongoDB collection
        operation_func: Zero-argument callable returning the awaitable to execute
        enabled: Whether to record a span at all
        db_name: Database name recorded on the span
        extra_attributes: Additional attributes to add to the span
    """
    # Fast path when tracing is disabled
    if not enabled:
        return await operation_func()

    attributes = {
        "db.system": "mongodb",
        "db.name": db_name,
        "db.collection.name": collection_name,
        "db.operation": operation_name,
        **extra_attributes
    }

    with tracer.start_as_current_span(
        f"db.{collection_name}.{operation_name}",
        attributes=attributes
    ) as span:
        try:
            result = await operation_func()
            span.set_status(trace.Status(trace.StatusCode.OK))
            return result
        except Exception as e:
            span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise
