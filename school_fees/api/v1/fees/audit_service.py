"""
Fee audit logging. Every fee, adjustment, disablement and calendar mutation appends one row
naming the acting user. Call inside the mutation's transaction; caller must commit.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from school_fees.core.models import FeeAuditLog

logger = logging.getLogger(__name__)


async def log_fee_audit(
    db: AsyncSession,
    tenant_id: UUID,
    reference_table: str,
    reference_id: UUID,
    action_type: str,
    old_value: Optional[dict],
    new_value: Optional[dict],
    actor_id: UUID,
) -> None:
    log = FeeAuditLog(
        tenant_id=tenant_id,
        reference_table=reference_table,
        reference_id=reference_id,
        action_type=action_type,
        old_value=old_value,
        new_value=new_value,
        changed_by=actor_id,
    )
    db.add(log)
    logger.info(
        "%s %s %s",
        action_type,
        reference_table,
        reference_id,
        extra={"tenant_id": tenant_id, "actor_id": actor_id},
    )
