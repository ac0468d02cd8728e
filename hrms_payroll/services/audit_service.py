"""
HRMS Payroll - Audit Trail Service

Records who triggered each payroll lifecycle transition.
"""

import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from hrms_payroll.models.audit import AuditLog, AuditAction


class AuditService:
    """Service for writing and reading the payroll audit trail."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log_action(
        self,
        company_id: Optional[uuid.UUID],
        entity_type: str,
        entity_id: str,
        action: AuditAction,
        user_id: Optional[uuid.UUID] = None,
        description: Optional[str] = None,
        new_values: Optional[Dict[str, Any]] = None,
        module: str = "payroll",
    ) -> AuditLog:
        """
        Log an audit action.

        The row is added to the caller's session and flushed; it is committed
        together with the transition it describes.
        """
        audit_log = AuditLog(
            company_id=company_id,
            user_id=user_id,
            module=module,
            action=action,
            target_entity_type=entity_type,
            target_entity_id=str(entity_id),
            description=description,
            new_values=new_values,
        )

        self.db.add(audit_log)
        await self.db.flush()

        return audit_log

    async def get_entity_history(
        self,
        entity_type: str,
        entity_id: str,
    ) -> List[AuditLog]:
        """Audit trail for one entity, oldest first."""
        result = await self.db.execute(
            select(AuditLog)
            .where(
                and_(
                    AuditLog.target_entity_type == entity_type,
                    AuditLog.target_entity_id == str(entity_id),
                )
            )
            .order_by(AuditLog.created_at)
        )
        return list(result.scalars().all())
