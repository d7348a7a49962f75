"""
Resolver groups, one per entity type
"""

from .common import CommonResolver
from .exchange import ExchangeResolver
from .deposit_action import DepositActionResolver
from .withdrawal_action import WithdrawalActionResolver
from .deposit import DepositResolver
from .withdrawal import WithdrawalResolver
from .user import UserResolver

__all__ = [
    "CommonResolver",
    "ExchangeResolver",
    "DepositActionResolver",
    "WithdrawalActionResolver",
    "DepositResolver",
    "WithdrawalResolver",
    "UserResolver",
]
