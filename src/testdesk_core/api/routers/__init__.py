"""API routers for testdesk."""

from . import (
    auth,
    comments,
    failures,
    notifications,
    test_cases,
    test_plans,
    test_results,
    test_runs,
    test_suites,
)

__all__ = [
    "auth",
    "comments",
    "failures",
    "notifications",
    "test_cases",
    "test_plans",
    "test_results",
    "test_runs",
    "test_suites",
]
