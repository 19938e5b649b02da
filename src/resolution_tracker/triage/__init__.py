"""Webhook-driven triage of mirror issues into the bug tracker."""

from .bug_publisher import BugTrackerPublisher
from .directive import Directive, parse_directive
from .event_filter import should_trigger
from .runner import TriageTaskRunner, get_triage_runner
from .scheduler import DebouncedScheduler, build_triage_task, get_scheduler
from .task_handler import task_router
from .task_queue import HttpTask, SQSTaskQueue, TaskQueue, get_task_queue

__all__ = [
    "BugTrackerPublisher",
    "DebouncedScheduler",
    "Directive",
    "HttpTask",
    "SQSTaskQueue",
    "TaskQueue",
    "TriageTaskRunner",
    "build_triage_task",
    "get_scheduler",
    "get_task_queue",
    "get_triage_runner",
    "parse_directive",
    "should_trigger",
    "task_router",
]
