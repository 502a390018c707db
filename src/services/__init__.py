"""Services package.

Keep this module lightweight: importing `services` must not configure logging
or start the event bus thread. Those happen in the application startup path.
"""

from .event_bus import EventBus, Events, event_bus
from .logger import cleanup_logging, get_logger, setup_logging

__all__ = ["EventBus", "Events", "cleanup_logging", "event_bus", "get_logger", "setup_logging"]
