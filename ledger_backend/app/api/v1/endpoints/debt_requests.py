"""
Debt Request API Endpoints.

Merchants record debts; the addressed customer approves or rejects them.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from ledger_backend.app.db.session import get_db
from ledger_backend.app.schemas.debt_request import (
    DebtRequestCreate,
    DebtRequestConfirm,
    DebtRequestReject,
    DebtRequestResponse,
    DebtConfirmationResponse,
)
from ledger_backend.app.schemas.ledger import LedgerEntryResponse
from ledger_backend.app.core.guards import require_permission
from ledger_backend.app.core.dependencies import get_current_user, get_client_ip
from ledger_backend.app.models.enums import Permission
from ledger_backend.app.models.ledger_enums import DebtRequestStatus
from ledger_backend.app.domain.ledger.debt_requests import DebtRequestService

router = APIRouter(prefix="/debt-requests", tags=["Debt Requests"])


@router.post("", response_model=DebtRequestResponse, status_code=status.HTTP_201_CREATED)
async def create_debt_request(
    debt_data: DebtRequestCreate,
    current_user: dict = Depends(require_permission(Permission.MANAGE_STORE)),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a debt request (business owner only).

    The customer must belong to the business.
    """
    debt_request = await DebtRequestService.create_debt_request(
        db,
        business_id=debt_data.business_id,
        staff_id=current_user["user_id"],
        customer_id=debt_data.customer_id,
        amount=debt_data.amount,
        currency=debt_data.currency,
        notes=debt_data.notes,
        due_date=debt_data.due_date,
    )
    return DebtRequestResponse.model_validate(debt_request)


@router.get("", response_model=List[DebtRequestResponse])
async def list_debt_requests(
    business_id: UUID = Query(..., description="Business to list debt requests for"),
    customer_id: Optional[UUID] = Query(None, description="Merchant-only customer filter"),
    status: Optional[DebtRequestStatus] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    List debt requests.

    Merchants see the whole business; customers only see their own requests.
    """
    debt_requests = await DebtRequestService.list_debt_requests(
        db,
        business_id=business_id,
        user_id=current_user["user_id"],
        customer_id=customer_id,
        status=status,
    )
    return [DebtRequestResponse.model_validate(item) for item in debt_requests]


@router.post("/{debt_request_id}/confirm", response_model=DebtConfirmationResponse)
async def confirm_debt_request(
    debt_request_id: UUID,
    request: Request,
    confirm_data: Optional[DebtRequestConfirm] = None,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Approve a debt request; creates a PENDING debt ledger entry."""
    confirm_data = confirm_data or DebtRequestConfirm()
    confirmation = await DebtRequestService.confirm_debt_request(
        db,
        debt_request_id=debt_request_id,
        identity=current_user,
        expected_business_id=confirm_data.business_id,
        origin=get_client_ip(request),
    )
    return DebtConfirmationResponse(
        ledger_entry=LedgerEntryResponse.model_validate(confirmation.ledger_entry),
        debt_request=DebtRequestResponse.model_validate(confirmation.debt_request),
    )


@router.post("/{debt_request_id}/reject", response_model=DebtRequestResponse)
async def reject_debt_request(
    debt_request_id: UUID,
    reject_data: Optional[DebtRequestReject] = None,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Reject a debt request. No ledger effect."""
    reject_data = reject_data or DebtRequestReject()
    debt_request = await DebtRequestService.reject_debt_request(
        db,
        debt_request_id=debt_request_id,
        identity=current_user,
        expected_business_id=reject_data.business_id,
        reason=reject_data.rejection_reason,
    )
    return DebtRequestResponse.model_validate(debt_request)
