"""
Pydantic schemas for class rosters.
"""

from pydantic import BaseModel, Field, ConfigDict
from typing import Dict, List, Optional


class RosterEntry(BaseModel):
    """One member of a class as returned by the members endpoint."""
    id: str
    display_name: Optional[str] = Field(default=None, alias="displayName")
    email: Optional[str] = None
    role: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)


class Roster(BaseModel):
    """Members of one class, split by role and indexed by id."""
    teachers: List[RosterEntry] = Field(default_factory=list)
    students: List[RosterEntry] = Field(default_factory=list)
    by_id: Dict[str, RosterEntry] = Field(default_factory=dict)

    @classmethod
    def from_members(cls, members: List[RosterEntry]) -> "Roster":
        roster = cls()
        for member in members:
            roster.by_id[member.id] = member
            if member.role == "teacher":
                roster.teachers.append(member)
            elif member.role == "student":
                roster.students.append(member)
        return roster
