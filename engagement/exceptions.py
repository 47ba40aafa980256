"""
Exception hierarchy for the engagement engine

Every error carries a stable ``kind`` that EngagementService turns into a
typed OperationResult, plus a request id and a short message safe to show
to the pair or user.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from uuid import uuid4
import logging

logger = logging.getLogger(__name__)


class EngagementError(Exception):
    """
    Base class for errors raised by the weekly engagement engine

    Errors log themselves when created: a warning for expected failures
    (bad input, unmet preconditions, missing documents), an error with
    traceback when a driver exception is attached as ``cause``.

    Example:
        raise EngagementError(
            message="Weekly rollover failed",
            user_id="user-1",
            operation="ensure_weekly",
            context={"pair_id": "pair-1", "week_key": "2025-W10"}
        )
    """

    # Mapped 1:1 onto OperationResult.error_kind
    kind = "error"

    def __init__(
        self,
        message: str,
        user_id: Optional[str] = None,
        request_id: Optional[str] = None,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        user_message: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.user_id = user_id
        self.request_id = request_id or str(uuid4())
        self.operation = operation
        self.context = context or {}
        self.cause = cause
        self.user_message = user_message or "Something went wrong with your weekly progress. Please try again."
        self.timestamp = datetime.now(timezone.utc)

        self._log_error()

    def _log_error(self) -> None:
        log_data = {
            "error_type": self.__class__.__name__,
            "error_kind": self.kind,
            # 'message' is reserved on LogRecord
            "error_message": self.message,
            "request_id": self.request_id,
            "user_id": self.user_id,
            "operation": self.operation,
            "error_context": self.context,
            "timestamp": self.timestamp.isoformat()
        }

        if self.cause:
            log_data["cause"] = str(self.cause)
            logger.error(f"{self.__class__.__name__}: {self.message}", extra=log_data, exc_info=self.cause)
        else:
            logger.warning(f"{self.__class__.__name__}: {self.message}", extra=log_data)

    def to_dict(self) -> Dict[str, Any]:
        """Plain dict for hosting applications that return errors as JSON"""
        return {
            "error": self.__class__.__name__,
            "kind": self.kind,
            "message": self.message,
            "user_message": self.user_message,
            "request_id": self.request_id,
            "timestamp": self.timestamp.isoformat()
        }


# ==========================================
# Caller Errors
# ==========================================

class ValidationError(EngagementError):
    """
    Bad caller input: blank ids, unknown categories, non-finite point values

    Example:
        raise ValidationError(
            message="Unknown category: cooking",
            field="category_filter",
            value="cooking"
        )
    """

    kind = "invalid_argument"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        self.field = field
        self.value = value
        context = kwargs.pop("context", None) or {}
        context.update({"field": field, "value": value})
        super().__init__(
            message=message,
            user_message=f"Invalid {field}: {message}" if field else message,
            context=context,
            **kwargs
        )


class PreconditionFailedError(EngagementError):
    """
    Well-formed request the current weekly state does not allow

    ``reason`` is a short machine tag (target_not_met, insufficient_points,
    already_claimed, already_used); the message itself is shown to the user.
    """

    kind = "precondition_failed"

    def __init__(
        self,
        message: str,
        reason: Optional[str] = None,
        **kwargs
    ):
        self.reason = reason
        context = kwargs.pop("context", None) or {}
        context.setdefault("reason", reason)
        super().__init__(
            message=message,
            user_message=kwargs.pop("user_message", None) or message,
            context=context,
            **kwargs
        )


# ==========================================
# Document Store Errors
# ==========================================

class DatabaseError(EngagementError):
    """Document store failure (memory or postgres backend)"""

    kind = "store_error"


class ConnectionError(DatabaseError):
    """The postgres pool is closed or the server is unreachable"""

    def __init__(self, message: str = "Document store connection failed", **kwargs):
        super().__init__(
            message=message,
            user_message="Progress is temporarily unavailable. Please try again in a moment.",
            **kwargs
        )


class QueryError(DatabaseError):
    """A read or write against the documents table failed"""

    def __init__(
        self,
        message: str,
        query: Optional[str] = None,
        **kwargs
    ):
        self.query = query
        context = kwargs.pop("context", None) or {}
        context["query"] = query
        super().__init__(
            message=message,
            user_message="Your progress could not be saved. Please try again.",
            context=context,
            **kwargs
        )


class RecordNotFoundError(DatabaseError):
    """A pair, challenge or other document the operation needs is missing"""

    kind = "not_found"

    def __init__(
        self,
        message: str,
        record_type: Optional[str] = None,
        record_id: Optional[str] = None,
        **kwargs
    ):
        self.record_type = record_type
        self.record_id = record_id
        context = kwargs.pop("context", None) or {}
        context.update({"record_type": record_type, "record_id": record_id})
        super().__init__(
            message=message,
            user_message=f"{record_type or 'Record'} not found.",
            context=context,
            **kwargs
        )


# ==========================================
# Configuration Errors
# ==========================================

class ConfigurationError(EngagementError):
    """An environment setting is missing or out of range"""

    kind = "configuration_error"

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        self.config_key = config_key
        super().__init__(
            message=message,
            user_message="The engagement engine is misconfigured. Please contact support.",
            context={"config_key": config_key},
            **kwargs
        )


# ==========================================
# Helpers
# ==========================================

def require_id(value: Optional[str], field: str, operation: Optional[str] = None) -> str:
    """
    Reject empty identifiers before any store access

    Raises:
        ValidationError: if value is None or blank
    """
    if value is None or not str(value).strip():
        raise ValidationError(
            message=f"{field} is required",
            field=field,
            value=value,
            operation=operation
        )
    return str(value)


def wrap_external_exception(
    error: Exception,
    operation: str,
    user_id: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None
) -> EngagementError:
    """
    Translate a psycopg exception raised by the postgres store

    OperationalError becomes ConnectionError, any other psycopg.Error a
    QueryError; anything else is wrapped in a plain EngagementError.
    ``context`` is kept on every branch.

    Example:
        try:
            await cur.execute(UPSERT_SQL, (collection, key, Jsonb(data)))
        except psycopg.Error as e:
            raise wrap_external_exception(e, operation="set_document",
                                          context={"collection": collection, "key": key})
    """
    import psycopg

    if isinstance(error, psycopg.OperationalError):
        return ConnectionError(
            message=f"Document store connection failed: {error}",
            user_id=user_id,
            operation=operation,
            context=context,
            cause=error
        )
    if isinstance(error, psycopg.Error):
        return QueryError(
            message=f"Document store query failed: {error}",
            user_id=user_id,
            operation=operation,
            context=dict(context or {}),
            cause=error
        )

    return EngagementError(
        message=f"{operation} failed: {error}",
        user_id=user_id,
        operation=operation,
        context=context,
        cause=error
    )
