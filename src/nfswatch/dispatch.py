"""Deliver change events to watchdog event handlers."""

import importlib
from typing import Callable

from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
)

from .models import ChangeEvent, ChangeKind


_WATCHDOG_EVENTS = {
    ChangeKind.CREATED_FILE: FileCreatedEvent,
    ChangeKind.CREATED_FOLDER: DirCreatedEvent,
    ChangeKind.DELETED_FOLDER: DirDeletedEvent,
    ChangeKind.DELETED_FILE: FileDeletedEvent,
    ChangeKind.MODIFIED_FILE: FileModifiedEvent,
}


def to_watchdog_event(event: ChangeEvent) -> FileSystemEvent:
    """
    Convert a change event into the equivalent watchdog event.

    Args:
        event: Change event from the diff engine

    Returns:
        watchdog FileSystemEvent for the same path
    """
    return _WATCHDOG_EVENTS[event.kind](event.path)


class HandlerDispatcher:
    """
    Event sink that forwards change events to a watchdog handler.

    Lets handlers written for native watchdog observers consume events
    from the polling controller unchanged.
    """

    def __init__(self, handler: FileSystemEventHandler):
        self.handler = handler

    def __call__(self, event: ChangeEvent) -> None:
        self.handler.dispatch(to_watchdog_event(event))


def load_handler(target: str) -> FileSystemEventHandler:
    """
    Instantiate a handler class given as "module:ClassName".

    Args:
        target: Import path of a FileSystemEventHandler subclass

    Returns:
        Handler instance

    Raises:
        ValueError: If the target is malformed or does not name a handler
    """
    module_name, sep, class_name = target.partition(":")
    if not sep or not module_name or not class_name:
        raise ValueError(f"Handler must be given as module:ClassName, got {target!r}")
    try:
        handler_cls = getattr(importlib.import_module(module_name), class_name)
    except (ImportError, AttributeError) as e:
        raise ValueError(f"Cannot load handler {target!r}: {e}") from e
    if not (isinstance(handler_cls, type) and issubclass(handler_cls, FileSystemEventHandler)):
        raise ValueError(f"{target!r} is not a watchdog FileSystemEventHandler")
    return handler_cls()


def chain(*sinks: Callable[[ChangeEvent], None]) -> Callable[[ChangeEvent], None]:
    """Combine several event sinks into one."""
    def emit(event: ChangeEvent) -> None:
        for sink in sinks:
            sink(event)
    return emit
