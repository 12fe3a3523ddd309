"""
Listing and claiming a user's rewards.
"""

from datetime import datetime
from typing import Callable, List, Optional

import structlog

from stakeflow.core.exceptions import RewardAlreadyClaimedError, RewardNotFoundError
from stakeflow.gateway import PersistenceGateway, Row, PROTOCOLS, REWARDS, STAKES, eq, desc
from stakeflow.utils.time import utc_now


logger = structlog.get_logger(__name__)


class RewardClaimService:

    def __init__(self, gateway: PersistenceGateway, now: Callable[[], datetime] = utc_now):
        self.gateway = gateway
        self._now = now
        self.logger = logger.bind(service="reward_claims")

    async def list_user_rewards(
        self,
        user_id: str,
        claimed: Optional[bool] = None,
        reward_type: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Row]:
        filters = [eq("user_id", user_id)]
        if claimed is not None:
            filters.append(eq("claimed", claimed))
        if reward_type:
            filters.append(eq("reward_type", reward_type))
        return await self.gateway.find(
            REWARDS, filters, order_by=[desc("reward_date")], limit=limit, offset=offset
        )

    async def get_reward(self, reward_id: str, user_id: str) -> Row:
        """One reward owned by `user_id`, with its stake and protocol attached."""
        reward = await self.gateway.find_one(REWARDS, [eq("id", reward_id), eq("user_id", user_id)])
        if reward is None:
            raise RewardNotFoundError(reward_id)

        stake = await self.gateway.find_one(STAKES, [eq("id", reward["stake_id"])])
        protocol = await self.gateway.find_one(PROTOCOLS, [eq("id", reward["protocol_id"])])
        return {**reward, "stake": stake, "protocol": protocol}

    async def claim_reward(
        self,
        reward_id: str,
        user_id: str,
        transaction_hash: Optional[str] = None,
    ) -> Row:
        """Flip `claimed` to true. The flag never goes back."""
        reward = await self.gateway.find_one(REWARDS, [eq("id", reward_id), eq("user_id", user_id)])
        if reward is None:
            raise RewardNotFoundError(reward_id)
        if reward["claimed"]:
            raise RewardAlreadyClaimedError(reward_id)

        updated = await self.gateway.update(
            REWARDS,
            [eq("id", reward_id), eq("user_id", user_id), eq("claimed", False)],
            {
                "claimed": True,
                "claim_date": self._now(),
                "transaction_hash": transaction_hash,
            },
        )
        if not updated:
            # Lost a race with a concurrent claim
            raise RewardAlreadyClaimedError(reward_id)

        self.logger.info("Reward claimed", reward_id=reward_id, user_id=user_id)
        return updated[0]
