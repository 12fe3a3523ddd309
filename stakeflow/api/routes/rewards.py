"""
Reward listing and claim routes.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query

from stakeflow.api.dependencies import get_claim_service
from stakeflow.api.schemas.common import PaginationParams, SuccessResponse, create_success_response
from stakeflow.api.schemas.rewards import ClaimRewardRequest, RewardDetailOut, RewardOut
from stakeflow.models import RewardType
from stakeflow.services import RewardClaimService


router = APIRouter()


@router.get("/user/{user_id}", response_model=SuccessResponse, summary="List User Rewards")
async def list_user_rewards(
    user_id: str = Path(..., min_length=1),
    claimed: Optional[bool] = Query(default=None),
    reward_type: Optional[RewardType] = Query(default=None),
    pagination: PaginationParams = Depends(),
    service: RewardClaimService = Depends(get_claim_service),
):
    rows = await service.list_user_rewards(
        user_id,
        claimed=claimed,
        reward_type=reward_type.value if reward_type else None,
        limit=pagination.limit,
        offset=pagination.offset,
    )
    return create_success_response(data=[RewardOut.model_validate(row) for row in rows])


@router.post(
    "/{reward_id}/claim",
    response_model=SuccessResponse,
    summary="Claim Reward",
    description="Mark a reward as claimed (404 if unknown or owned by another user, 400 if already claimed)"
)
async def claim_reward(
    body: ClaimRewardRequest,
    reward_id: str = Path(..., min_length=1),
    service: RewardClaimService = Depends(get_claim_service),
):
    row = await service.claim_reward(reward_id, body.user_id, body.transaction_hash)
    return create_success_response(data=RewardOut.model_validate(row), message="Reward claimed")


@router.get(
    "/{reward_id}",
    response_model=SuccessResponse,
    summary="Get Reward",
    description="One reward with its stake and protocol (404 if unknown or owned by another user)"
)
async def get_reward(
    reward_id: str = Path(..., min_length=1),
    user_id: str = Query(..., min_length=1),
    service: RewardClaimService = Depends(get_claim_service),
):
    row = await service.get_reward(reward_id, user_id)
    return create_success_response(data=RewardDetailOut.model_validate(row), message="Reward fetched")
