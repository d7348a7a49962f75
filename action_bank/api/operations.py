"""
Named operation endpoint

Every query and mutation is reachable as ``POST /api/operations/{name}``.
"""

from fastapi import APIRouter, Depends

from .auth import get_action_bank, get_caller
from .schemas import OperationRequest
from ..action_bank import ActionBank
from ..guards import CallerContext


router = APIRouter()


@router.get("")
async def list_operations(bank: ActionBank = Depends(get_action_bank)):
    """List operation names grouped by kind"""
    operations = [bank.get_operation(name) for name in bank.operation_names]
    return {
        "queries": [op.name for op in operations if op.kind == "query"],
        "mutations": [op.name for op in operations if op.kind == "mutation"],
    }


@router.post("/{name}")
async def execute_operation(
    name: str,
    request: OperationRequest,
    bank: ActionBank = Depends(get_action_bank),
    caller: CallerContext = Depends(get_caller)
):
    """Run a query or mutation"""
    result = await bank.execute(name, request.args, caller)
    return {"data": result}
