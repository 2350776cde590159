"""
Debounced task scheduling.
"""

from .debounce import (
    GENERATED_RESOURCE_PREFIX,
    WEBVIEW_PREFIX,
    DebouncedTaskScheduler,
    DebouncePolicy,
    PendingTask,
    TaskFactory,
    generated_resource_key,
    webview_key,
)

__all__ = [
    "GENERATED_RESOURCE_PREFIX",
    "WEBVIEW_PREFIX",
    "DebouncedTaskScheduler",
    "DebouncePolicy",
    "PendingTask",
    "TaskFactory",
    "generated_resource_key",
    "webview_key",
]
