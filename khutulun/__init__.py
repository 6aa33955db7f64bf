"""State storage, watching, Clout lookups, scheduling and systemd unit helpers for a small cluster orchestrator."""

__version__ = "0.1.0"