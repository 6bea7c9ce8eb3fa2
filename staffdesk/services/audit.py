# StaffDesk - Audit Service
# Writes audit_log rows for workflow changes

from datetime import datetime, date
from decimal import Decimal
from typing import Optional, Any

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.inspection import inspect

from staffdesk.models.audit_log import AuditLog, create_audit_entry
from staffdesk.models.base import Base


class AuditService:
    """
    Creates audit log entries inside the caller's transaction.

    Usage:
        audit = AuditService(db, actor.employee_id, client_ip)

        db.add(request)
        db.flush()
        audit.log_insert(request)

        old_state = audit.capture_state(request)
        request.reason = "Updated"
        audit.log_update(request, old_state)

    Rows are only added to the session, so they commit or roll back
    together with the change they describe.
    """

    AUDITED_TABLES = {
        "requests",
        "timesheet_entries",
        "timesheet_tasks",
        "leave_balances",
        "request_types",
    }

    def __init__(
        self,
        db: Session,
        performed_by: int,
        ip_address: Optional[str] = None,
        context: Optional[str] = None,
    ):
        self.db = db
        self.performed_by = performed_by
        self.ip_address = ip_address
        self.context = context

    def _serialize_value(self, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, (datetime, date)):
            return value.isoformat()
        if isinstance(value, Decimal):
            # Keep the fixed-point text, floats would round
            return str(value)
        if isinstance(value, (int, float, str, bool, dict, list)):
            return value
        return str(value)

    def _get_primary_key(self, instance: Base) -> int:
        mapper = inspect(type(instance))
        return getattr(instance, mapper.primary_key[0].name)

    def capture_state(self, instance: Base) -> dict[str, Any]:
        """
        Snapshot of a model's columns as a JSON-ready dict.

        Call this BEFORE changing the instance to get the "old" state.
        """
        mapper = inspect(type(instance))
        return {
            column.key: self._serialize_value(getattr(instance, column.key))
            for column in mapper.column_attrs
        }

    def _diff_states(self, old_state: dict[str, Any], new_state: dict[str, Any]) -> list[str]:
        keys = sorted(set(old_state) | set(new_state))
        return [key for key in keys if old_state.get(key) != new_state.get(key)]

    def _log(
        self,
        instance: Base,
        action: str,
        old_values: Optional[dict] = None,
        new_values: Optional[dict] = None,
        changed_fields: Optional[list[str]] = None,
        context: Optional[str] = None,
    ) -> Optional[AuditLog]:
        table_name = instance.__tablename__
        if table_name not in self.AUDITED_TABLES:
            return None

        entry = create_audit_entry(
            table_name=table_name,
            record_id=self._get_primary_key(instance),
            action=action,
            performed_by=self.performed_by,
            old_values=old_values,
            new_values=new_values,
            changed_fields=changed_fields,
            ip_address=self.ip_address,
            context=context or self.context,
        )
        self.db.add(entry)
        return entry

    def log_insert(self, instance: Base, context: Optional[str] = None) -> Optional[AuditLog]:
        """Log an INSERT. The instance must be flushed so it has an id."""
        return self._log(
            instance,
            "INSERT",
            new_values=self.capture_state(instance),
            context=context,
        )

    def log_update(
        self,
        instance: Base,
        old_state: dict[str, Any],
        context: Optional[str] = None,
    ) -> Optional[AuditLog]:
        """Log an UPDATE against a state from capture_state. Nothing is logged if nothing changed."""
        new_state = self.capture_state(instance)
        changed_fields = self._diff_states(old_state, new_state)
        if not changed_fields:
            return None
        return self._log(
            instance,
            "UPDATE",
            old_values=old_state,
            new_values=new_state,
            changed_fields=changed_fields,
            context=context,
        )

    def log_delete(self, instance: Base, context: Optional[str] = None) -> Optional[AuditLog]:
        """Log a DELETE. Call before the row is removed."""
        return self._log(
            instance,
            "DELETE",
            old_values=self.capture_state(instance),
            context=context,
        )


class AuditQuery:
    """Read helpers over audit_log."""

    def __init__(self, db: Session):
        self.db = db

    def get_record_history(self, table_name: str, record_id: int) -> list[AuditLog]:
        """Full history of one record, oldest first."""
        return list(self.db.execute(
            select(AuditLog)
            .where(
                AuditLog.table_name == table_name,
                AuditLog.record_id == record_id,
            )
            .order_by(AuditLog.performed_at.asc(), AuditLog.audit_id.asc())
        ).scalars().all())
