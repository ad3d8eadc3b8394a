"""
Storage backends for ClypSync.

Provides the paste store (Redis) and the image bucket (local directory).
"""

from clypsync.database.base import ImageBucket, PasteStore, Subscription
from clypsync.database.file_bucket import LocalImageBucket
from clypsync.database.redis_manager import RedisPasteStore

__all__ = [
    'ImageBucket',
    'LocalImageBucket',
    'PasteStore',
    'RedisPasteStore',
    'Subscription',
]
