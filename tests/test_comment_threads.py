"""Tests for comment thread assembly and the comment thread cache."""
from datetime import datetime, timedelta

import pytest

from testdesk_client.comments import Comment, CommentDraft, CommentThread, assemble_thread
from testdesk_client.errors import AuthorizationError, NotFoundError, ValidationError

T0 = datetime(2024, 3, 1, 9, 0, 0)


def comment(comment_id, parent_id=None, minutes=0, author_id="alice", test_case_id=7):
    created = T0 + timedelta(minutes=minutes)
    return Comment(
        id=comment_id,
        content=f"comment {comment_id}",
        author_id=author_id,
        test_case_id=test_case_id,
        parent_id=parent_id,
        created_at=created,
        updated_at=created,
    )


class FakeCommentStore:
    """In-memory comment storage that behaves like the Resource Store."""

    def __init__(self, user_id="alice"):
        self.user_id = user_id
        self.records = []
        self.calls = []
        self.fail_with = None
        self._next_id = 1
        self._clock = T0

    def add(self, content, author_id, parent_id=None, test_case_id=7):
        record = {
            "id": self._next_id,
            "content": content,
            "author_id": author_id,
            "test_case_id": test_case_id,
            "parent_id": parent_id,
            "created_at": self._clock.isoformat(),
            "updated_at": self._clock.isoformat(),
        }
        self._next_id += 1
        self._clock += timedelta(minutes=1)
        self.records.append(record)
        return record

    def _find(self, comment_id):
        for record in self.records:
            if record["id"] == comment_id:
                return record
        raise NotFoundError(f"Comment not found: {comment_id}", status_code=404)

    async def list_comments(self, test_case_id):
        self.calls.append(("GET", test_case_id))
        return [dict(r) for r in self.records if r["test_case_id"] == test_case_id]

    async def create_comment(self, test_case_id, content, parent_id=None):
        self.calls.append(("POST", content, parent_id))
        if self.fail_with is not None:
            raise self.fail_with
        return dict(self.add(content, self.user_id, parent_id, test_case_id))

    async def update_comment(self, comment_id, content):
        self.calls.append(("PATCH", comment_id, content))
        if self.fail_with is not None:
            raise self.fail_with
        record = self._find(comment_id)
        record["content"] = content
        return dict(record)

    async def delete_comment(self, comment_id):
        self.calls.append(("DELETE", comment_id))
        if self.fail_with is not None:
            raise self.fail_with
        self._find(comment_id)
        self.records = [
            r for r in self.records if r["id"] != comment_id and r["parent_id"] != comment_id
        ]


class TestAssembleThread:
    """Building the display tree from a flat list."""

    def test_reply_nested_under_parent(self):
        tree = assemble_thread([comment(1, minutes=0), comment(2, parent_id=1, minutes=1), comment(3, minutes=2)])

        assert [node.id for node in tree] == [1, 3]
        assert [reply.id for reply in tree[0].replies] == [2]
        assert tree[1].replies == []

    def test_top_level_and_replies_ordered_by_created_at(self):
        tree = assemble_thread([
            comment(5, minutes=10),
            comment(4, minutes=1),
            comment(7, parent_id=4, minutes=30),
            comment(6, parent_id=4, minutes=20),
        ])

        assert [node.id for node in tree] == [4, 5]
        assert [reply.id for reply in tree[0].replies] == [6, 7]

    def test_ties_broken_by_id(self):
        tree = assemble_thread([comment(9, minutes=0), comment(8, minutes=0)])

        assert [node.id for node in tree] == [8, 9]

    def test_unreachable_comments_dropped(self):
        tree = assemble_thread([
            comment(1),
            comment(2, parent_id=1, minutes=1),
            comment(3, parent_id=2, minutes=2),
            comment(4, parent_id=42, minutes=3),
        ])

        assert [node.id for node in tree] == [1]
        assert [reply.id for reply in tree[0].replies] == [2]

    def test_every_comment_appears_once(self):
        flat = [comment(1), comment(2, parent_id=1, minutes=1), comment(3, minutes=2), comment(4, parent_id=3, minutes=3)]
        tree = assemble_thread(flat)

        seen = [node.id for node in tree] + [reply.id for node in tree for reply in node.replies]
        assert sorted(seen) == [1, 2, 3, 4]
        for node in tree:
            assert all(reply.parent_id == node.id for reply in node.replies)

    def test_empty_list(self):
        assert assemble_thread([]) == []


class TestCommentThread:
    """Creating, editing and deleting through the cache."""

    @pytest.mark.asyncio
    async def test_refresh_builds_tree(self):
        store = FakeCommentStore()
        store.add("first", "alice")
        store.add("reply", "bob", parent_id=1)
        store.add("other case", "bob", test_case_id=8)
        thread = CommentThread(store, 7)

        tree = await thread.refresh()

        assert [node.id for node in tree] == [1]
        assert [reply.content for reply in tree[0].replies] == ["reply"]
        assert len(thread.comments) == 2

    @pytest.mark.asyncio
    async def test_create_reply_then_refetch(self):
        store = FakeCommentStore()
        store.add("first", "bob")
        thread = CommentThread(store, 7)
        await thread.refresh()

        created = await thread.create_comment("  agreed  ", parent_id=1)

        assert created.content == "agreed"
        assert store.calls[-2:] == [("POST", "agreed", 1), ("GET", 7)]
        assert [reply.id for reply in thread.tree[0].replies] == [created.id]

    @pytest.mark.asyncio
    async def test_blank_content_rejected_without_request(self):
        store = FakeCommentStore()
        thread = CommentThread(store, 7)

        with pytest.raises(ValidationError):
            await thread.create_comment("   \n ")

        assert store.calls == []

    @pytest.mark.asyncio
    async def test_create_requires_user(self):
        store = FakeCommentStore(user_id=None)
        thread = CommentThread(store, 7)

        with pytest.raises(AuthorizationError):
            await thread.create_comment("hello")

        assert store.calls == []

    @pytest.mark.asyncio
    async def test_delete_cascades_to_replies(self):
        store = FakeCommentStore()
        store.add("comment 1", "alice")
        store.add("comment 2", "bob", parent_id=1)
        store.add("comment 3", "bob")
        thread = CommentThread(store, 7)
        await thread.refresh()

        deleted = await thread.delete_comment(1, confirm=lambda comment_id: True)

        assert deleted is True
        assert [node.id for node in thread.tree] == [3]
        assert all(c.id != 2 for c in thread.comments)

    @pytest.mark.asyncio
    async def test_declined_confirmation_does_nothing(self):
        store = FakeCommentStore()
        store.add("keep me", "alice")
        thread = CommentThread(store, 7)
        await thread.refresh()
        store.calls.clear()

        deleted = await thread.delete_comment(1, confirm=lambda comment_id: False)

        assert deleted is False
        assert store.calls == []
        assert [node.id for node in thread.tree] == [1]

    @pytest.mark.asyncio
    async def test_async_confirmation(self):
        store = FakeCommentStore()
        store.add("bye", "alice")
        thread = CommentThread(store, 7)
        await thread.refresh()
        asked = []

        async def confirm(comment_id):
            asked.append(comment_id)
            return True

        assert await thread.delete_comment(1, confirm=confirm) is True
        assert asked == [1]
        assert thread.tree == []

    @pytest.mark.asyncio
    async def test_only_author_may_edit_or_delete(self):
        store = FakeCommentStore(user_id="alice")
        store.add("bob's comment", "bob")
        thread = CommentThread(store, 7)
        await thread.refresh()
        store.calls.clear()

        assert thread.can_modify(thread.comments[0]) is False
        with pytest.raises(AuthorizationError):
            await thread.update_comment(1, "edited")
        with pytest.raises(AuthorizationError):
            await thread.delete_comment(1, confirm=lambda comment_id: True)
        assert store.calls == []

    @pytest.mark.asyncio
    async def test_author_edits_comment(self):
        store = FakeCommentStore(user_id="alice")
        store.add("typo", "alice")
        thread = CommentThread(store, 7)
        await thread.refresh()

        assert thread.can_modify(thread.comments[0]) is True
        updated = await thread.update_comment(1, "fixed")

        assert updated.content == "fixed"
        assert thread.tree[0].content == "fixed"

    @pytest.mark.asyncio
    async def test_not_found_propagates_and_keeps_cache(self):
        store = FakeCommentStore()
        store.add("mine", "alice")
        thread = CommentThread(store, 7)
        await thread.refresh()
        cached = list(thread.comments)
        store.records.clear()

        with pytest.raises(NotFoundError):
            await thread.update_comment(1, "edited")

        assert thread.comments == cached

    @pytest.mark.asyncio
    async def test_refresh_after_dispose_is_discarded(self):
        store = FakeCommentStore()
        store.add("late", "alice")
        thread = CommentThread(store, 7)
        thread.dispose()

        tree = await thread.refresh()

        assert tree == []
        assert thread.comments == []


class TestCommentDraft:
    """Draft text survives failed submissions."""

    @pytest.mark.asyncio
    async def test_failed_submit_keeps_content(self):
        store = FakeCommentStore()
        store.fail_with = NotFoundError("Test case not found: 7", status_code=404)
        thread = CommentThread(store, 7)
        draft = CommentDraft("Steps are outdated")

        with pytest.raises(NotFoundError):
            await draft.submit(thread)

        assert draft.content == "Steps are outdated"
        assert draft.submitting is False

    @pytest.mark.asyncio
    async def test_successful_submit_clears_content(self):
        store = FakeCommentStore()
        store.add("parent", "bob")
        thread = CommentThread(store, 7)
        draft = CommentDraft("reply text", parent_id=1)

        created = await draft.submit(thread)

        assert created.parent_id == 1
        assert draft.content == ""
        assert [reply.id for reply in thread.tree[0].replies] == [created.id]
