from typing import Any, Dict

from fastapi import APIRouter, Depends

from apps.storefront.routes.deps import get_current_user, get_loyalty_service
from apps.storefront.services.loyalty.loyalty_service import LoyaltyService
from apps.storefront.utils.envelope import ok

router = APIRouter(tags=["loyalty"])


@router.get("/status")
async def loyalty_status(
    user: Dict[str, Any] = Depends(get_current_user),
    loyalty: LoyaltyService = Depends(get_loyalty_service),
):
    return ok(await loyalty.get_status(user["id"]))


@router.get("/tiers")
async def loyalty_tiers(loyalty: LoyaltyService = Depends(get_loyalty_service)):
    return ok(loyalty.policy.to_dict())


@router.get("/rewards")
async def list_rewards(loyalty: LoyaltyService = Depends(get_loyalty_service)):
    return ok([r.to_dict() for r in await loyalty.list_rewards()])


@router.post("/rewards/{reward_id}/redeem")
async def redeem_reward(
    reward_id: str,
    user: Dict[str, Any] = Depends(get_current_user),
    loyalty: LoyaltyService = Depends(get_loyalty_service),
):
    return ok(await loyalty.redeem_reward(user["id"], reward_id), status=201)


@router.get("/vouchers")
async def my_vouchers(
    user: Dict[str, Any] = Depends(get_current_user),
    loyalty: LoyaltyService = Depends(get_loyalty_service),
):
    return ok(await loyalty.my_vouchers(user["id"]))


@router.get("/vouchers/{code}")
async def lookup_voucher(
    code: str,
    user: Dict[str, Any] = Depends(get_current_user),
    loyalty: LoyaltyService = Depends(get_loyalty_service),
):
    return ok(await loyalty.lookup_redeemed_voucher(user["id"], code))


@router.get("/history")
async def points_history(
    user: Dict[str, Any] = Depends(get_current_user),
    loyalty: LoyaltyService = Depends(get_loyalty_service),
):
    return ok(await loyalty.points_history(user["id"]))
