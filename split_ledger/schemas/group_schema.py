from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime


class GroupBase(BaseModel):
    name: str = Field(..., max_length=100)


class GroupCreate(GroupBase):
    currency: Optional[str] = Field(None, min_length=3, max_length=3)


class GroupOut(GroupBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    currency: str
    created_by: str
    created_at: datetime


class GroupMemberCreate(BaseModel):
    user_id: str


class GroupMemberOut(GroupMemberCreate):
    model_config = ConfigDict(from_attributes=True)

    id: str
    group_id: str
    joined_at: datetime


class GroupWithMembers(GroupOut):
    members: List[GroupMemberOut] = []
