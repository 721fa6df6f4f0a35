"""
Long-term allocation endpoints (admin)
"""

from typing import Any, List
from uuid import UUID
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_session
from app.core.security import CallerIdentity, require_admin
from app.schemas.allocation import AllocationCreate, AllocationResponse
from app.schemas.response import ERROR_RESPONSES, MessageResponse
from app.services.allocation_service import allocation_service

router = APIRouter()


@router.get("", response_model=List[AllocationResponse], responses=ERROR_RESPONSES)
async def list_allocations(
    admin_user: CallerIdentity = Depends(require_admin),
    db: AsyncSession = Depends(get_session)
) -> Any:
    return await allocation_service.list_allocations(db)


@router.post("", response_model=AllocationResponse, status_code=status.HTTP_201_CREATED, responses=ERROR_RESPONSES)
async def create_allocation(
    allocation_data: AllocationCreate,
    admin_user: CallerIdentity = Depends(require_admin),
    db: AsyncSession = Depends(get_session)
) -> Any:
    return await allocation_service.create_allocation(db, admin_user, allocation_data)


@router.patch("/{allocation_id}/approve", response_model=AllocationResponse, responses=ERROR_RESPONSES)
async def approve_allocation(
    allocation_id: UUID,
    admin_user: CallerIdentity = Depends(require_admin),
    db: AsyncSession = Depends(get_session)
) -> Any:
    return await allocation_service.approve_allocation(db, admin_user, allocation_id)


@router.patch("/{allocation_id}/reject", response_model=AllocationResponse, responses=ERROR_RESPONSES)
async def reject_allocation(
    allocation_id: UUID,
    admin_user: CallerIdentity = Depends(require_admin),
    db: AsyncSession = Depends(get_session)
) -> Any:
    return await allocation_service.reject_allocation(db, admin_user, allocation_id)


@router.delete("/{allocation_id}", response_model=MessageResponse, responses=ERROR_RESPONSES)
async def delete_allocation(
    allocation_id: UUID,
    admin_user: CallerIdentity = Depends(require_admin),
    db: AsyncSession = Depends(get_session)
) -> Any:
    await allocation_service.delete_allocation(db, allocation_id)
    return MessageResponse(message="Allocation deleted")
