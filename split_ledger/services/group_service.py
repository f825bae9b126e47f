import logging
from sqlalchemy.orm import Session
from sqlalchemy import and_
from fastapi import HTTPException
from typing import List, Optional
from split_ledger.core.config import settings
from split_ledger.models.groups import Group, GroupMember
from split_ledger.schemas.group_schema import GroupCreate

logger = logging.getLogger(__name__)


def create_group(db: Session, group_data: GroupCreate, created_by: str) -> Group:
    """Create a new group; the creator becomes its first member"""
    group = Group(
        name=group_data.name,
        currency=(group_data.currency or settings.default_currency).upper(),
        created_by=created_by
    )
    db.add(group)
    db.commit()
    db.refresh(group)

    add_member_to_group(db, group.id, created_by)
    logger.info(f"Created group {group.id} ({group.currency}) for {created_by}")
    return group


def get_group(db: Session, group_id: str) -> Optional[Group]:
    """Get a group by ID"""
    return db.query(Group).filter(Group.id == group_id).first()


def get_member_group(db: Session, group_id: str, user_id: str) -> Group:
    """Get a group the user belongs to, or fail with 404/403"""
    group = get_group(db, group_id)
    if not group:
        raise HTTPException(status_code=404, detail="Group not found")
    if not is_group_member(db, group_id, user_id):
        raise HTTPException(status_code=403, detail="You are not a member of this group")
    return group


def get_user_groups(db: Session, user_id: str) -> List[Group]:
    """Get all groups for a user"""
    return db.query(Group).join(GroupMember, GroupMember.group_id == Group.id)\
        .filter(GroupMember.user_id == user_id).all()


def get_group_members(db: Session, group_id: str) -> List[GroupMember]:
    """Get all members of a group"""
    return db.query(GroupMember).filter(GroupMember.group_id == group_id)\
        .order_by(GroupMember.joined_at, GroupMember.user_id).all()


def is_group_member(db: Session, group_id: str, user_id: str) -> bool:
    """Check if user is a member of the group"""
    member = db.query(GroupMember).filter(
        and_(GroupMember.group_id == group_id, GroupMember.user_id == user_id)
    ).first()
    return member is not None


def add_member_to_group(db: Session, group_id: str, user_id: str) -> GroupMember:
    """Add a member to a group"""
    if is_group_member(db, group_id, user_id):
        raise HTTPException(status_code=400, detail="User is already a member of this group")

    member = GroupMember(group_id=group_id, user_id=user_id)
    db.add(member)
    db.commit()
    db.refresh(member)
    return member


def require_members(db: Session, group_id: str, user_ids: List[str]) -> None:
    """Reject users that are not members of the group"""
    members = {member.user_id for member in get_group_members(db, group_id)}
    for user_id in user_ids:
        if user_id not in members:
            logger.warning(f"Rejected non-member {user_id} in group {group_id}")
            raise HTTPException(status_code=400, detail=f"User {user_id} is not a member of this group")
