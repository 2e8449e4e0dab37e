"""Access control service: API key lifecycle, role/permission graph, audit trail."""

__version__ = "1.0.0"
