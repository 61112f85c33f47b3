"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Traceability of sign-ins, additions, deletions and imports
2. Debugging capability when a collaborator fails
3. A history the user can inspect on the status page

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from financely.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from financely.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route stdlib logging (and so structlog output) to stderr."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper()))


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility), if configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("financely.audit")

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_signed_up(self, user_id: str, email: Optional[str]) -> None:
        """Log account creation."""
        await self.log(AuditEventBuilder.user_signed_up(user_id=user_id, email=email))

    async def log_signed_in(self, user_id: str, method: str) -> None:
        """Log sign-in (password or google)."""
        await self.log(AuditEventBuilder.user_signed_in(user_id=user_id, method=method))

    async def log_signed_out(self, user_id: Optional[str]) -> None:
        await self.log(AuditEventBuilder.user_signed_out(user_id=user_id))

    async def log_auth_failed(
        self,
        operation: str,
        error_message: str,
        error_code: Optional[str] = None,
    ) -> None:
        """Log a rejected auth attempt."""
        await self.log(
            AuditEventBuilder.auth_failed(
                operation=operation,
                error_message=error_message,
                error_code=error_code,
            )
        )

    async def log_transaction_added(
        self,
        transaction_id: str,
        user_id: str,
        name: str,
        amount: str,
        transaction_type: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a successful insert."""
        event = AuditEventBuilder.transaction_added(
            transaction_id=transaction_id,
            user_id=user_id,
            name=name,
            amount=amount,
            transaction_type=transaction_type,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_deleted(self, transaction_id: str, user_id: str) -> None:
        await self.log(
            AuditEventBuilder.transaction_deleted(
                transaction_id=transaction_id,
                user_id=user_id,
            )
        )

    async def log_delete_cancelled(
        self,
        transaction_id: str,
        user_id: Optional[str],
    ) -> None:
        await self.log(
            AuditEventBuilder.delete_cancelled(
                transaction_id=transaction_id,
                user_id=user_id,
            )
        )

    async def log_operation_failed(
        self,
        event_type: AuditEventType,
        error_message: str,
        user_id: Optional[str],
        entity_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed save, delete or import."""
        event = AuditEventBuilder.operation_failed(
            event_type=event_type,
            error_message=error_message,
            user_id=user_id,
            entity_id=entity_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_import_completed(
        self,
        user_id: str,
        imported: int,
        dropped: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.import_completed(
            user_id=user_id,
            imported=imported,
            dropped=dropped,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_export_completed(
        self,
        user_id: Optional[str],
        row_count: int,
        filename: str,
    ) -> None:
        event = AuditEventBuilder.export_completed(
            user_id=user_id,
            row_count=row_count,
            filename=filename,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        form: str,
        issues: list[dict],
        user_id: Optional[str] = None,
    ) -> None:
        """Log a form rejected before any network call."""
        await self.log(
            AuditEventBuilder.validation_failed(
                form=form,
                issues=issues,
                user_id=user_id,
            )
        )

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        user_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            user_id=user_id,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a CSV import).
    Pass it through all subsequent operations.
    """
    return uuid4()
