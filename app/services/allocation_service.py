"""
Long-term seat allocations requested and decided by admins
"""

import logging
from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.database import db_manager
from app.core.exceptions import ConflictError, NotFoundError, ValidationError
from app.core.security import CallerIdentity
from app.models.allocation import LongTermAllocation, AllocationStatus
from app.models.seat import Seat
from app.schemas.allocation import AllocationCreate

logger = logging.getLogger(__name__)


class AllocationService:

    async def _load(self, db: AsyncSession, allocation_id: UUID, for_update: bool = False) -> LongTermAllocation:
        stmt = (
            select(LongTermAllocation)
            .options(selectinload(LongTermAllocation.seat))
            .where(LongTermAllocation.id == allocation_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            stmt = stmt.with_for_update()
        allocation = (await db.execute(stmt)).scalar_one_or_none()
        if not allocation:
            raise NotFoundError("Allocation", allocation_id)
        return allocation

    async def create_allocation(
        self,
        db: AsyncSession,
        caller: CallerIdentity,
        data: AllocationCreate
    ) -> LongTermAllocation:
        if data.start_date > data.end_date:
            raise ValidationError("startDate must not be after endDate", field="startDate")

        async with db_manager.transaction(db):
            if not await db.get(Seat, data.seat_id):
                raise NotFoundError("Seat", data.seat_id)

            allocation = LongTermAllocation(
                seat_id=data.seat_id,
                start_date=data.start_date,
                end_date=data.end_date,
                reason=data.reason,
                status=AllocationStatus.PENDING,
                requested_by=caller.id,
            )
            db.add(allocation)
            await db.flush()
            allocation = await self._load(db, allocation.id)

        logger.info(
            f"Allocation {allocation.id} requested for seat {data.seat_id} "
            f"{data.start_date}..{data.end_date}"
        )
        return allocation

    async def list_allocations(self, db: AsyncSession) -> List[LongTermAllocation]:
        result = await db.execute(
            select(LongTermAllocation)
            .options(selectinload(LongTermAllocation.seat))
            .order_by(LongTermAllocation.created_at.desc())
        )
        return list(result.scalars().all())

    async def decide(
        self,
        db: AsyncSession,
        caller: CallerIdentity,
        allocation_id: UUID,
        status: AllocationStatus
    ) -> LongTermAllocation:
        """
        Approve or reject a PENDING allocation; decisions are final
        """
        async with db_manager.transaction(db):
            allocation = await self._load(db, allocation_id, for_update=True)
            if allocation.status != AllocationStatus.PENDING:
                raise ConflictError(
                    f"Allocation already {allocation.status.value.lower()}",
                    details={"status": allocation.status.value}
                )
            allocation.status = status
            allocation.approved_by = caller.id
            await db.flush()
            allocation = await self._load(db, allocation_id)

        logger.info(f"Allocation {allocation_id} {status.value.lower()} by {caller.id}")
        return allocation

    async def approve_allocation(self, db: AsyncSession, caller: CallerIdentity, allocation_id: UUID):
        return await self.decide(db, caller, allocation_id, AllocationStatus.APPROVED)

    async def reject_allocation(self, db: AsyncSession, caller: CallerIdentity, allocation_id: UUID):
        return await self.decide(db, caller, allocation_id, AllocationStatus.REJECTED)

    async def delete_allocation(self, db: AsyncSession, allocation_id: UUID) -> None:
        async with db_manager.transaction(db):
            allocation = await self._load(db, allocation_id)
            await db.delete(allocation)

        logger.info(f"Allocation {allocation_id} deleted")


allocation_service = AllocationService()
