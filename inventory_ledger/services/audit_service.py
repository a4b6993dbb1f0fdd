# inventory_ledger/services/audit_service.py
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from inventory_ledger.models import AuditLog
from inventory_ledger.logging_setup import logger as log_manager

class AuditService:
    """Writes the activity log that pairs every ledger mutation."""

    def __init__(self, session: Session):
        """Initialize the audit service.

        Args:
            session: Database session
        """
        self.session = session

    def log_activity(self, user_id: Optional[int], action: str, details: Optional[Dict[str, Any]] = None) -> AuditLog:
        """Record an activity entry in the caller's transaction.

        The entry is flushed but not committed, so it is rolled back together
        with the operation it describes. It is also written to the audit
        trail file.

        Args:
            user_id: Acting user ID (None for system jobs)
            action: Action name, e.g. 'INVENTORY_ADJUSTED'
            details: JSON-serialisable details

        Returns:
            The AuditLog row
        """
        entry = AuditLog(user_id=user_id, action=action, details=details or {})
        self.session.add(entry)
        self.session.flush()

        log_manager.audit(user_id, action, details)
        return entry
