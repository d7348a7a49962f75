"""
Pydantic schemas for HTTP requests
"""

from typing import Any, Dict

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    username: Any = None
    password: Any = None


class OperationRequest(BaseModel):
    args: Dict[str, Any] = Field(default_factory=dict, description="Operation arguments")


class NewUserRequest(BaseModel):
    newUser: Dict[str, Any] = Field(..., description="User fields, including a plain password")


class UserRequest(BaseModel):
    user: Dict[str, Any] = Field(..., description="User fields, including the target id")
