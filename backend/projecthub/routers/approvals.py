from fastapi import APIRouter, Depends, Query

from ..auth import permissions
from ..auth.rbac_contract import Action, Resource
from ..config import get_settings
from ..dependencies import get_current_profile, require_resource_permission
from ..schemas.approval import ApprovalLevelCheckResponse, ExpenditureApprovalLevelsResponse
from ..schemas.user_profile import UserProfile
from ..services.capabilities import UserCapabilities

router = APIRouter(prefix="/approvals", tags=["approvals"])


@router.get("/expenditures/levels", response_model=ExpenditureApprovalLevelsResponse)
async def expenditure_approval_levels(
    amount: int = Query(..., ge=0, description="Amount in minor currency units"),
    _: UserCapabilities = Depends(
        require_resource_permission(Resource.EXPENDITURES, Action.READ)
    ),
) -> ExpenditureApprovalLevelsResponse:
    """
    Approval stages an expenditure of this amount must pass, in order.

    Thresholds come from EXPENDITURE_TIER1_THRESHOLD / EXPENDITURE_TIER2_THRESHOLD.
    """
    levels = permissions.get_expenditure_approval_levels(
        amount, get_settings().expenditure_tiers
    )
    return ExpenditureApprovalLevelsResponse(amount=amount, levels=levels)


@router.get("/levels/{level}", response_model=ApprovalLevelCheckResponse)
async def approval_level_check(
    level: str,
    profile: UserProfile = Depends(get_current_profile),
) -> ApprovalLevelCheckResponse:
    return ApprovalLevelCheckResponse(
        level=level,
        role=profile.role,
        can_approve=permissions.can_approve_at_level(profile.role, level),
    )
