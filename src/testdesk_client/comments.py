"""
Threaded comments on a test case.

The Resource Store returns a test case's comments as one flat list;
``assemble_thread`` turns it into top-level comments with their replies.
Replies are one level deep.
"""
import inspect
import logging
from collections import defaultdict
from datetime import datetime
from typing import Awaitable, Callable, Iterable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .errors import AuthorizationError, ValidationError
from .store import ResourceStoreClient

logger = logging.getLogger("testdesk-client.comments")

CommentId = Union[int, str]
ConfirmCallback = Callable[[CommentId], Union[bool, Awaitable[bool]]]


class Comment(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: CommentId
    content: str
    author_id: str
    test_case_id: CommentId
    parent_id: Optional[CommentId] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class CommentNode(Comment):
    """A top-level comment with its replies, oldest first."""

    replies: list[Comment] = Field(default_factory=list)


def _chronological(comment: Comment):
    return (comment.created_at, comment.id)


def assemble_thread(comments: Iterable[Comment]) -> list[CommentNode]:
    """
    Build the display tree from a flat comment list.

    Top-level comments and each reply list are ordered by ``created_at``
    (ties by id). A comment whose parent is a reply or is missing cannot be
    shown and is dropped.
    """
    comments = list(comments)
    top_level = sorted((c for c in comments if c.parent_id is None), key=_chronological)
    top_level_ids = {c.id for c in top_level}

    replies = defaultdict(list)
    for comment in comments:
        if comment.parent_id is None:
            continue
        if comment.parent_id in top_level_ids:
            replies[comment.parent_id].append(comment)
        else:
            logger.debug(f"Dropping comment {comment.id}: parent {comment.parent_id} is not a top-level comment")

    return [
        CommentNode(**comment.model_dump(), replies=sorted(replies[comment.id], key=_chronological))
        for comment in top_level
    ]


class CommentThread:
    """
    Cached comment thread of one test case.

    Every successful mutation re-fetches the whole thread; nothing is
    inserted locally, so there is nothing to undo when a request fails.
    """

    def __init__(
        self,
        store: ResourceStoreClient,
        test_case_id: CommentId,
        current_user_id: Optional[str] = None,
    ):
        self.store = store
        self.test_case_id = test_case_id
        self.current_user_id = current_user_id if current_user_id is not None else store.user_id
        self.comments: list[Comment] = []
        self.tree: list[CommentNode] = []
        self._disposed = False

    def dispose(self) -> None:
        self._disposed = True

    def get(self, comment_id: CommentId) -> Optional[Comment]:
        for comment in self.comments:
            if comment.id == comment_id:
                return comment
        return None

    def can_modify(self, comment: Comment) -> bool:
        """Whether the current user may edit or delete the comment."""
        return self.current_user_id is not None and comment.author_id == self.current_user_id

    async def refresh(self) -> list[CommentNode]:
        records = await self.store.list_comments(self.test_case_id)
        if self._disposed:
            logger.debug(f"Discarding comments of test case {self.test_case_id} fetched after dispose")
            return self.tree

        self.comments = [Comment.model_validate(record) for record in records]
        self.tree = assemble_thread(self.comments)
        return self.tree

    def _require_user(self) -> str:
        if not self.current_user_id:
            raise AuthorizationError("You must be signed in to comment")
        return self.current_user_id

    def _require_author(self, comment_id: CommentId, action: str) -> None:
        cached = self.get(comment_id)
        if cached is not None and not self.can_modify(cached):
            raise AuthorizationError(f"Only the author can {action} comment {comment_id}")

    @staticmethod
    def _clean(content: Optional[str]) -> str:
        if not content or not content.strip():
            raise ValidationError("Comment content cannot be empty")
        return content.strip()

    async def create_comment(self, content: str, parent_id: Optional[CommentId] = None) -> Comment:
        """Post a comment (or a reply to ``parent_id``) and reload the thread."""
        content = self._clean(content)
        user_id = self._require_user()

        record = await self.store.create_comment(self.test_case_id, content, parent_id)
        created = Comment.model_validate(record)
        logger.info(f"User {user_id} commented on test case {self.test_case_id} (comment {created.id})")

        await self.refresh()
        return created

    async def update_comment(self, comment_id: CommentId, content: str) -> Comment:
        content = self._clean(content)
        self._require_user()
        self._require_author(comment_id, "edit")

        record = await self.store.update_comment(comment_id, content)
        await self.refresh()
        return Comment.model_validate(record)

    async def delete_comment(self, comment_id: CommentId, confirm: ConfirmCallback) -> bool:
        """
        Delete a comment (and its replies) after the user confirms.

        ``confirm`` receives the comment id and returns, or resolves to, a
        bool. Returns False when the user declined.
        """
        self._require_user()
        self._require_author(comment_id, "delete")

        answer = confirm(comment_id)
        if inspect.isawaitable(answer):
            answer = await answer
        if not answer:
            logger.debug(f"Deletion of comment {comment_id} cancelled")
            return False

        await self.store.delete_comment(comment_id)
        logger.info(f"Deleted comment {comment_id} on test case {self.test_case_id}")
        await self.refresh()
        return True


class CommentDraft:
    """Text being composed in a comment or reply box."""

    def __init__(self, content: str = "", parent_id: Optional[CommentId] = None):
        self.content = content
        self.parent_id = parent_id
        self.submitting = False

    async def submit(self, thread: CommentThread) -> Comment:
        """Post the draft. The text is kept if posting fails so it can be retried."""
        self.submitting = True
        try:
            created = await thread.create_comment(self.content, parent_id=self.parent_id)
        finally:
            self.submitting = False
        self.content = ""
        return created
