"""
Pydantic schemas for sync runs
"""

from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import List, Dict, Optional, Set
from enum import Enum


class SyncMode(str, Enum):
    """Sync run modes"""
    FULL = "full"
    INCREMENTAL = "incremental"


class SyncState(BaseModel):
    """Persisted between runs: last run time and ids already processed"""
    last_run: Optional[datetime] = Field(default=None, alias="lastRun")
    seen_ids: Set[str] = Field(default_factory=set, alias="seenIds")

    model_config = ConfigDict(populate_by_name=True)


class FilterCriteria(BaseModel):
    """Operator-supplied predicates; every field is optional and they AND together"""
    due_before: Optional[datetime] = None
    due_after: Optional[datetime] = None
    statuses: List[str] = Field(default_factory=list)
    group_ids: List[str] = Field(default_factory=list)
    incomplete: bool = False
    overdue: bool = False


class UploadResult(BaseModel):
    """Tally of one Notion upsert stage"""
    skipped: bool = False
    existing: int = 0
    attempted: int = 0
    uploaded: int = 0
    failed: int = 0
    failed_ids: List[str] = Field(default_factory=list)


class SyncReport(BaseModel):
    """Outcome of one pipeline run"""
    mode: SyncMode
    total_fetched: int = 0
    total_filtered: int = 0
    new_items: Optional[int] = None
    exported_files: List[str] = Field(default_factory=list)
    year_counts: Dict[str, int] = Field(default_factory=dict)
    month_counts: Dict[str, int] = Field(default_factory=dict)
    upload: UploadResult = Field(default_factory=UploadResult)
