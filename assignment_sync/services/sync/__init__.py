"""
Assignment sync engine

Components:
- Normalization of raw API records into canonical assignments
- Filtering by status, class, due window and submission state
- Multi-format local exports partitioned by year and month
- Rate-limited, idempotent Notion upload
- Persisted run state for incremental mode
"""

from .exporter import MultiFormatExporter, partition_items
from .filters import FilterEngine
from .normalizer import AssignmentNormalizer
from .pipeline import SyncPipeline
from .rate_limiter import MinIntervalRateLimiter
from .state_store import StateStore
from .upsert import UpsertSync

__all__ = [
    'AssignmentNormalizer',
    'FilterEngine',
    'MinIntervalRateLimiter',
    'MultiFormatExporter',
    'StateStore',
    'SyncPipeline',
    'UpsertSync',
    'partition_items',
]
