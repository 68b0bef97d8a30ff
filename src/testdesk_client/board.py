"""
Kanban board state with optimistic moves.

A ``BoardState`` partitions items into ordered columns by ``status``.
``BoardStateManager.move_item`` applies a move locally before persisting it
and puts the item back if the Resource Store rejects the change.

Moves of the same item can overlap (drag, then drag again before the first
request returns). Each persisted move gets a per-item sequence number and
only the response to the latest one may roll back; earlier responses are
stale.
"""
import asyncio
import logging
from typing import Optional, Sequence, Union

from pydantic import BaseModel, Field

from .errors import BoardStateError, MoveFailedError, ResourceStoreError, ValidationError
from .items import BoardItem, item_from_record, resource_path
from .store import ResourceStoreClient

logger = logging.getLogger("testdesk-client.board")

ItemId = Union[int, str]


class ColumnDefinition(BaseModel):
    id: str
    title: str


FAILURE_COLUMNS = (
    ColumnDefinition(id="new", title="New"),
    ColumnDefinition(id="in-progress", title="In Progress"),
    ColumnDefinition(id="blocked", title="Blocked"),
    ColumnDefinition(id="resolved", title="Resolved"),
)

TEST_CASE_COLUMNS = (
    ColumnDefinition(id="draft", title="Draft"),
    ColumnDefinition(id="active", title="Active"),
    ColumnDefinition(id="deprecated", title="Deprecated"),
    ColumnDefinition(id="archived", title="Archived"),
)

DEFAULT_COLUMNS = {
    "failure": FAILURE_COLUMNS,
    "test_case": TEST_CASE_COLUMNS,
}


class Column(BaseModel):
    """A board column; ``item_ids`` is in on-screen order."""

    id: str
    title: str
    item_ids: list[ItemId] = Field(default_factory=list)


class BoardFilter(BaseModel):
    """
    Display filter over board items. Unset fields match everything;
    set fields are combined with AND.
    """

    search: Optional[str] = None
    priority: Optional[str] = None
    assignee: Optional[str] = None
    tag: Optional[str] = None

    def matches(self, item: BoardItem) -> bool:
        if self.search:
            needle = self.search.lower()
            haystacks = (item.title or "", item.description or "")
            if not any(needle in text.lower() for text in haystacks):
                return False
        if self.priority and item.priority != self.priority:
            return False
        if self.assignee and item.assignee != self.assignee:
            return False
        if self.tag and self.tag not in item.tags:
            return False
        return True


class BoardState(BaseModel):
    """Columns plus the items they reference, keyed by item id."""

    columns: list[Column]
    items: dict[ItemId, BoardItem] = Field(default_factory=dict)

    @classmethod
    def from_items(
        cls,
        items: Sequence[BoardItem],
        column_definitions: Sequence[ColumnDefinition],
    ) -> "BoardState":
        """
        Partition items into columns by status.

        Items whose status matches no column land in the first column and
        take its id as their status. Duplicate ids keep the first occurrence.

        Raises:
            ValidationError: If no columns are defined
        """
        if not column_definitions:
            raise ValidationError("A board needs at least one column")

        columns = [Column(id=d.id, title=d.title) for d in column_definitions]
        by_id = {column.id: column for column in columns}
        fallback = columns[0]

        state_items = {}
        for item in items:
            if item.id in state_items:
                logger.debug(f"Ignoring duplicate board item {item.id}")
                continue
            column = by_id.get(item.status)
            if column is None:
                logger.debug(
                    f"Item {item.id} has status {item.status!r} with no matching column; "
                    f"placing it in {fallback.id!r}"
                )
                item = item.model_copy(update={"status": fallback.id})
                column = fallback
            column.item_ids.append(item.id)
            state_items[item.id] = item

        return cls(columns=columns, items=state_items)

    def column(self, column_id: str) -> Optional[Column]:
        for column in self.columns:
            if column.id == column_id:
                return column
        return None

    def column_of(self, item_id: ItemId) -> Optional[Column]:
        for column in self.columns:
            if item_id in column.item_ids:
                return column
        return None

    def visible_items(self, board_filter: Optional[BoardFilter] = None) -> dict[str, list[BoardItem]]:
        """Items passing the filter, per column id, in column order."""
        board_filter = board_filter or BoardFilter()
        return {
            column.id: [
                self.items[item_id]
                for item_id in column.item_ids
                if board_filter.matches(self.items[item_id])
            ]
            for column in self.columns
        }

    def check_partition(self) -> None:
        """
        Raise ``BoardStateError`` unless every item sits in exactly one
        column and that column's id equals the item's status.
        """
        seen = set()
        for column in self.columns:
            for item_id in column.item_ids:
                if item_id in seen:
                    raise BoardStateError(f"Item {item_id} appears in more than one place")
                seen.add(item_id)
                item = self.items.get(item_id)
                if item is None:
                    raise BoardStateError(f"Column {column.id!r} references unknown item {item_id}")
                if item.status != column.id:
                    raise BoardStateError(
                        f"Item {item_id} has status {item.status!r} but sits in column {column.id!r}"
                    )
        missing = set(self.items) - seen
        if missing:
            raise BoardStateError(f"Items missing from every column: {sorted(map(str, missing))}")


class BoardStateManager:
    """
    Owns one board's state and reconciles moves with the Resource Store.

    ``state`` is mutated in place by moves and replaced by ``load()``.
    """

    def __init__(
        self,
        store: ResourceStoreClient,
        kind: str,
        column_definitions: Optional[Sequence[ColumnDefinition]] = None,
    ):
        self.store = store
        self.kind = kind
        self.resource_path = resource_path(kind)
        self.column_definitions = list(column_definitions or DEFAULT_COLUMNS[kind])
        self.state = BoardState.from_items([], self.column_definitions)
        self._sequence: dict[ItemId, int] = {}
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    async def load(self) -> BoardState:
        """Fetch all items of this board's kind and rebuild the columns."""
        records = await self.store.list_items(self.resource_path)
        if self._disposed:
            logger.debug(f"Discarding {self.resource_path} load that finished after dispose")
            return self.state

        items = [item_from_record(self.kind, record) for record in records]
        self.state = BoardState.from_items(items, self.column_definitions)
        logger.info(f"Loaded {len(self.state.items)} item(s) from {self.resource_path}")
        return self.state

    def dispose(self) -> None:
        """Stop applying responses; in-flight requests finish without touching state."""
        self._disposed = True

    async def move_item(
        self,
        item_id: ItemId,
        source_column_id: str,
        dest_column_id: str,
        dest_index: int,
    ) -> BoardState:
        """
        Move an item and persist its new status.

        The local state changes before the request is sent. A move within
        one column only reorders and is not persisted.

        Returns:
            The board state (unchanged for no-op moves)

        Raises:
            ValidationError: If ``dest_column_id`` is not a column of this board
            MoveFailedError: If the Resource Store rejected the status change
        """
        state = self.state
        if self._disposed:
            logger.debug(f"Ignoring move of item {item_id} on a disposed board")
            return state

        dest = state.column(dest_column_id)
        if dest is None:
            raise ValidationError(f"Unknown destination column: {dest_column_id!r}")

        source = state.column(source_column_id)
        if source is None or item_id not in source.item_ids:
            logger.debug(f"Item {item_id} is not in column {source_column_id!r}; nothing to move")
            return state

        original_index = source.item_ids.index(item_id)
        max_index = len(dest.item_ids) - (1 if source is dest else 0)
        index = min(max(dest_index, 0), max_index)
        if source is dest and index == original_index:
            return state

        item = state.items[item_id]
        original_status = item.status

        source.item_ids.remove(item_id)
        dest.item_ids.insert(index, item_id)
        item.status = dest.id

        if source is dest:
            logger.debug(f"Reordered item {item_id} in {dest.id!r} to position {index}")
            return state

        sequence = self._sequence.get(item_id, 0) + 1
        self._sequence[item_id] = sequence

        try:
            await self.store.update_item(self.resource_path, item_id, {"status": dest.id})
        except ResourceStoreError as e:
            rolled_back = self._rollback(state, item_id, sequence, source.id, original_index, original_status)
            raise MoveFailedError(
                item_id, source.id, dest.id, cause=e, rolled_back=rolled_back
            ) from e
        except asyncio.CancelledError:
            self._rollback(state, item_id, sequence, source.id, original_index, original_status)
            raise

        if self._sequence.get(item_id) != sequence:
            logger.debug(f"Stale success for item {item_id} (move {sequence}) ignored")
        else:
            logger.info(f"Moved item {item_id} from {source.id!r} to {dest.id!r}")
        return state

    def _rollback(
        self,
        state: BoardState,
        item_id: ItemId,
        sequence: int,
        source_column_id: str,
        original_index: int,
        original_status: str,
    ) -> bool:
        """Put the item back where the move found it. Returns False when the response is stale."""
        if self._disposed:
            logger.debug(f"Board disposed; not rolling back item {item_id}")
            return False
        if state is not self.state:
            logger.debug(f"Board reloaded since the move; not rolling back item {item_id}")
            return False
        if self._sequence.get(item_id) != sequence:
            logger.warning(f"Stale failure for item {item_id} (move {sequence}); keeping the newer move")
            return False

        current = state.column_of(item_id)
        if current is not None:
            current.item_ids.remove(item_id)
        source = state.column(source_column_id)
        source.item_ids.insert(min(original_index, len(source.item_ids)), item_id)
        state.items[item_id].status = original_status
        logger.warning(f"Rolled back move of item {item_id} to {source_column_id!r}")
        return True
