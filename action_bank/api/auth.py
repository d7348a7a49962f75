"""
Authentication dependencies
"""

import uuid
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ..action_bank import ActionBank
from ..guards import CallerContext


# Missing credentials are not an error here; guards deny anonymous callers
security = HTTPBearer(auto_error=False)


def get_action_bank(request: Request) -> ActionBank:
    """Dependency to get the ActionBank attached to the running app"""
    return request.app.state.action_bank


def get_caller(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    bank: ActionBank = Depends(get_action_bank)
) -> CallerContext:
    """Decode the bearer token into a CallerContext (anonymous when absent or invalid)"""
    correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
    encoded = credentials.credentials if credentials else None
    return bank.caller_from_token(encoded, correlation_id)
