"""Notion sync engine: transport, paginated reads, bulk writes and page orchestration."""

from blocksync.adapters.notion.appender import BatchAppender
from blocksync.adapters.notion.deleter import BoundedConcurrencyDeleter
from blocksync.adapters.notion.executor import RequestExecutor
from blocksync.adapters.notion.models import Block, ParentReference, RetryPolicy
from blocksync.adapters.notion.orchestrator import SyncOrchestrator
from blocksync.adapters.notion.pagination import PaginatedReader
from blocksync.adapters.notion.sections import find_section
from blocksync.adapters.notion.transport import RetryingTransport

__all__ = [
    "BatchAppender",
    "Block",
    "BoundedConcurrencyDeleter",
    "PaginatedReader",
    "ParentReference",
    "RequestExecutor",
    "RetryPolicy",
    "RetryingTransport",
    "SyncOrchestrator",
    "find_section",
]
