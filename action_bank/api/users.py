"""
User endpoints
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from .auth import get_action_bank, get_caller
from .schemas import LoginRequest, NewUserRequest, UserRequest
from ..action_bank import ActionBank
from ..guards import CallerContext


router = APIRouter()


@router.post("/login")
async def login(request: LoginRequest, bank: ActionBank = Depends(get_action_bank)):
    """Exchange credentials for a bearer token"""
    token = await bank.login(request.username, request.password)
    return {"token": token}


@router.get("/id")
async def get_user_by_id(
    id: str = Query(...),
    bank: ActionBank = Depends(get_action_bank),
    caller: CallerContext = Depends(get_caller)
):
    user = await bank.execute("getUserById", {"id": id}, caller)
    if user is None:
        raise HTTPException(status_code=400, detail="Invalid user ID provided")
    return user


@router.get("/username")
async def get_user_by_username(
    username: str = Query(...),
    bank: ActionBank = Depends(get_action_bank),
    caller: CallerContext = Depends(get_caller)
):
    user = await bank.execute("getUserByUsername", {"username": username}, caller)
    if user is None:
        raise HTTPException(status_code=400, detail="Invalid username provided")
    return user


@router.get("")
async def list_users(
    pagination: int = Query(10),
    page: int = Query(1),
    bank: ActionBank = Depends(get_action_bank),
    caller: CallerContext = Depends(get_caller)
):
    users = await bank.execute("getUsers", {"pagination": pagination, "page": page}, caller)
    return {"users": users}


@router.post("/add")
async def add_user(
    request: NewUserRequest,
    bank: ActionBank = Depends(get_action_bank),
    caller: CallerContext = Depends(get_caller)
):
    return await bank.execute("addUser", request.newUser, caller)


@router.post("/edit")
async def edit_user(
    request: UserRequest,
    bank: ActionBank = Depends(get_action_bank),
    caller: CallerContext = Depends(get_caller)
):
    """Edit your own user record"""
    return await bank.execute("editUser", request.user, caller)


@router.post("/adminEdit")
async def admin_edit_user(
    request: UserRequest,
    bank: ActionBank = Depends(get_action_bank),
    caller: CallerContext = Depends(get_caller)
):
    return await bank.execute("adminEditUser", request.user, caller)


@router.post("/updatePassword")
async def update_password(
    request: UserRequest,
    bank: ActionBank = Depends(get_action_bank),
    caller: CallerContext = Depends(get_caller)
):
    user_id = await bank.execute("updatePassword", request.user, caller)
    return {"id": user_id, "message": "Password Successfully Updated"}


@router.post("/delete")
async def delete_user(
    request: UserRequest,
    bank: ActionBank = Depends(get_action_bank),
    caller: CallerContext = Depends(get_caller)
):
    user_id = await bank.execute("deleteUser", request.user, caller)
    return {"id": user_id}


@router.post("/passwordResetToken")
async def get_password_reset_token(
    request: UserRequest,
    bank: ActionBank = Depends(get_action_bank),
    caller: CallerContext = Depends(get_caller)
):
    token = await bank.execute("getPasswordResetToken", request.user, caller)
    return {"passwordToken": token}


@router.post("/resetPassword")
async def reset_password(request: UserRequest, bank: ActionBank = Depends(get_action_bank)):
    """Set a new password using a reset token"""
    user_id = await bank.update_password_with_token(request.user)
    return {"id": user_id, "message": "Password Successfully Updated"}
