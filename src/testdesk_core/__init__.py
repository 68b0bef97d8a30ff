"""testdesk core - Resource Store for test management (test cases, runs, failures, comments)."""

__version__ = "1.0.0"
