"""
Logging setup for aide.

Every record carries the owner (chat id) whose turn produced it. The relay
binds the owner in `owner_ctx` at the start of `MessageHandler.handle`, and
since asyncio copies context into tasks and `to_thread` workers, store calls
made during that turn log under the same owner. Sweeps and CLI commands run
outside any turn and show "-".
"""
import logging
import sys
from contextvars import ContextVar
from typing import Optional
from aide.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | [%(owner)s] | %(name)s:%(funcName)s:%(lineno)d - %(message)s"

owner_ctx: ContextVar[Optional[str]] = ContextVar("owner", default=None)

def get_owner() -> str:
    return owner_ctx.get() or "-"

class OwnerFilter(logging.Filter):
    def filter(self, record):
        record.owner = get_owner()
        return True

def configure_logging(level: str = "INFO"):
    """Send root logging to stderr, tagged with the current owner.

    Safe to call again: it replaces the handler instead of stacking a second one.
    """
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(OwnerFilter())
    root.addHandler(handler)

    # request-level chatter from the OpenAI client
    for name in ("httpx", "openai"):
        logging.getLogger(name).setLevel(logging.WARNING)

configure_logging(settings.LOG_LEVEL.upper())
logger = logging.getLogger("aide")
