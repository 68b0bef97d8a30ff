"""testdesk client core: Resource Store client, board state and comment threads."""

from .board import (
    FAILURE_COLUMNS,
    TEST_CASE_COLUMNS,
    BoardFilter,
    BoardState,
    BoardStateManager,
    Column,
    ColumnDefinition,
)
from .comments import Comment, CommentDraft, CommentNode, CommentThread, assemble_thread
from .errors import (
    AuthorizationError,
    BoardStateError,
    MoveFailedError,
    NetworkError,
    NotFoundError,
    ResourceStoreError,
    ValidationError,
)
from .items import BoardItem, FailureItem, TestCaseItem
from .store import ResourceStoreClient

__version__ = "1.0.0"

__all__ = [
    "AuthorizationError",
    "BoardFilter",
    "BoardItem",
    "BoardState",
    "BoardStateError",
    "BoardStateManager",
    "Column",
    "ColumnDefinition",
    "Comment",
    "CommentDraft",
    "CommentNode",
    "CommentThread",
    "FAILURE_COLUMNS",
    "FailureItem",
    "MoveFailedError",
    "NetworkError",
    "NotFoundError",
    "ResourceStoreClient",
    "ResourceStoreError",
    "TEST_CASE_COLUMNS",
    "TestCaseItem",
    "ValidationError",
    "assemble_thread",
]
