"""
Exchange endpoints for the calling user
"""

from fastapi import APIRouter, Depends

from .auth import get_action_bank, get_caller
from ..action_bank import ActionBank
from ..guards import CallerContext


router = APIRouter()


@router.get("/exchanges")
async def list_exchanges(
    bank: ActionBank = Depends(get_action_bank),
    caller: CallerContext = Depends(get_caller)
):
    """All exchanges owned by the caller, with balances"""
    exchanges = await bank.execute("getExchangesByUserId", {"userId": caller.user_id}, caller)
    return {"exchanges": exchanges}


@router.get("/exchanges/{exchange_id}")
async def get_exchange(
    exchange_id: str,
    bank: ActionBank = Depends(get_action_bank),
    caller: CallerContext = Depends(get_caller)
):
    return await bank.execute("getExchangeById", {"exchangeId": exchange_id}, caller)
