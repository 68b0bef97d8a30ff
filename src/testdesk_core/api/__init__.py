"""HTTP API for the testdesk Resource Store."""
