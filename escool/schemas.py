"""
Pydantic schemas for the HTTP layer.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    status: str
    backend: str


class CreateUserPayload(BaseModel):
    username: str = Field(..., min_length=3, max_length=64)
    password: str = Field(..., min_length=6)
    email: str = Field(..., max_length=255)
    avatar: Optional[str] = None
    bio: Optional[str] = None


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    avatar: Optional[str] = None
    bio: Optional[str] = None
    created_at: Optional[datetime] = None


class RolePayload(BaseModel):
    title: str
    description: Optional[str] = None
    is_open: bool = True


class CreateProjectPayload(BaseModel):
    name: str = Field(..., min_length=3, max_length=40)
    description: str = Field(..., min_length=10, max_length=200)
    category: str
    stage: str
    team_size: int = Field(default=1, ge=1)
    max_team_size: int = Field(..., ge=1)
    created_by: int
    banner: Optional[str] = None
    website: Optional[str] = None
    problem: Optional[str] = Field(default=None, max_length=500)
    market: Optional[str] = Field(default=None, max_length=500)
    competition: Optional[str] = Field(default=None, max_length=500)
    roles: list[RolePayload] = Field(default_factory=list)


class UpdateProjectPayload(BaseModel):
    name: Optional[str] = Field(default=None, min_length=3, max_length=40)
    description: Optional[str] = Field(default=None, min_length=10, max_length=200)
    category: Optional[str] = None
    stage: Optional[str] = None
    team_size: Optional[int] = Field(default=None, ge=1)
    max_team_size: Optional[int] = Field(default=None, ge=1)
    banner: Optional[str] = None
    website: Optional[str] = None
    problem: Optional[str] = Field(default=None, max_length=500)
    market: Optional[str] = Field(default=None, max_length=500)
    competition: Optional[str] = Field(default=None, max_length=500)
    featured: Optional[bool] = None


class ApplicationPayload(BaseModel):
    user_id: int
    role_id: Optional[int] = None
    message: str = Field(..., min_length=10, max_length=500)


class JoinTeamPayload(BaseModel):
    user_id: int
    role_id: Optional[int] = None
