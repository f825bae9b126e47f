from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from split_ledger.api.deps import get_current_user_id
from split_ledger.db.database import get_db
from split_ledger.services.group_service import (
    create_group, get_member_group, get_user_groups, get_group_members, add_member_to_group
)
from split_ledger.schemas.group_schema import (
    GroupCreate, GroupOut, GroupMemberCreate, GroupMemberOut, GroupWithMembers
)

router = APIRouter(prefix="/groups", tags=["groups"])


@router.post("/", response_model=GroupOut)
def create_new_group(
    group_data: GroupCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Create a new group"""
    return create_group(db, group_data, user_id)


@router.get("/", response_model=List[GroupOut])
def get_my_groups(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get all groups for current user"""
    return get_user_groups(db, user_id)


@router.get("/{group_id}", response_model=GroupWithMembers)
def get_group_details(
    group_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get group details with members"""
    group = get_member_group(db, group_id, user_id)
    members = get_group_members(db, group.id)
    return GroupWithMembers(
        id=group.id,
        name=group.name,
        currency=group.currency,
        created_by=group.created_by,
        created_at=group.created_at,
        members=[GroupMemberOut.model_validate(member) for member in members]
    )


@router.post("/{group_id}/members", response_model=GroupMemberOut)
def add_group_member(
    group_id: str,
    member_data: GroupMemberCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Add a member to a group (members only)"""
    group = get_member_group(db, group_id, user_id)
    return add_member_to_group(db, group.id, member_data.user_id)
