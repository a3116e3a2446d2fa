from __future__ import annotations
from pydantic import BaseModel, EmailStr, Field
from uuid import UUID
from datetime import datetime

class TeamCreate(BaseModel):
    name: str = Field(min_length=3, max_length=50)
    description: str | None = Field(default=None, max_length=500)

class TeamUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=3, max_length=50)
    description: str | None = Field(default=None, max_length=500)

class AddMemberRequest(BaseModel):
    email: EmailStr

class TeamMemberPublic(BaseModel):
    user_id: UUID
    email: str
    full_name: str | None = None
    is_leader: bool
    joined_at: datetime

class TeamPublic(BaseModel):
    id: UUID
    name: str
    description: str | None
    leader_id: UUID
    created_at: datetime
    members: list[TeamMemberPublic] = Field(default_factory=list)

class InvitationPublic(BaseModel):
    id: UUID
    team_id: UUID
    team_name: str
    user_id: UUID
    invited_by: UUID
    status: str
    created_at: datetime
    responded_at: datetime | None = None
