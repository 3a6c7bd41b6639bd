"""Orchestration of concurrent provider calls."""

from chatdelta.orchestration.fanout import FanOutExecutor, ensure_success

__all__ = ["FanOutExecutor", "ensure_success"]
