"""Board item variants and their mapping to Resource Store records."""
from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

ItemKind = Literal["failure", "test_case"]
Priority = Literal["low", "medium", "high", "critical"]

_RESOURCE_PATHS = {
    "failure": "/failures",
    "test_case": "/test-cases",
}


class _ItemBase(BaseModel):
    """Attributes every card carries. ``status`` is the id of the column holding it."""

    model_config = ConfigDict(extra="ignore")

    id: Union[int, str]
    title: str
    description: Optional[str] = None
    status: str
    priority: Optional[Priority] = None
    assignee: Optional[str] = None
    tags: list[str] = Field(default_factory=list)


class FailureItem(_ItemBase):
    kind: Literal["failure"] = "failure"
    test_case_id: Optional[int] = None
    test_result_id: Optional[int] = None
    due_date: Optional[datetime] = None


class TestCaseItem(_ItemBase):
    kind: Literal["test_case"] = "test_case"
    test_type: Optional[str] = None
    automation_status: Optional[str] = None


BoardItem = Annotated[Union[FailureItem, TestCaseItem], Field(discriminator="kind")]


def resource_path(kind: ItemKind) -> str:
    """Collection path backing a kind of board item."""
    try:
        return _RESOURCE_PATHS[kind]
    except KeyError:
        raise ValueError(f"Unknown board item kind: {kind!r}") from None


def item_from_record(kind: ItemKind, record: dict[str, Any]) -> Union[FailureItem, TestCaseItem]:
    """Build a board item from a Resource Store record of the given kind."""
    common = {
        "id": record["id"],
        "title": record.get("name") or record.get("title") or "",
        "description": record.get("description"),
        "status": record["status"],
        "priority": record.get("priority"),
        "assignee": record.get("assigned_to_id"),
        "tags": record.get("tags") or [],
    }
    if kind == "failure":
        return FailureItem(
            **common,
            test_case_id=record.get("test_case_id"),
            test_result_id=record.get("test_result_id"),
            due_date=record.get("due_date"),
        )
    if kind == "test_case":
        return TestCaseItem(
            **common,
            test_type=record.get("type"),
            automation_status=record.get("automation_status"),
        )
    raise ValueError(f"Unknown board item kind: {kind!r}")


def summary(item: Union[FailureItem, TestCaseItem]) -> str:
    """One-line card text."""
    if item.kind == "failure":
        parts = [f"#{item.id} {item.title}"]
        if item.due_date:
            parts.append(f"due {item.due_date:%Y-%m-%d}")
        if item.test_case_id is not None:
            parts.append(f"test case {item.test_case_id}")
        return " | ".join(parts)
    if item.kind == "test_case":
        parts = [f"#{item.id} {item.title}"]
        if item.test_type:
            parts.append(item.test_type)
        if item.automation_status:
            parts.append(item.automation_status)
        return " | ".join(parts)
    raise ValueError(f"Unknown board item kind: {item.kind!r}")
