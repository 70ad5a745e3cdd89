"""Decides whether a conversational turn is worth remembering, and where."""
import re
from aide.config import settings
from aide.models.memory import Sector

# First-person declarative language that signals a durable fact.
SEMANTIC_PATTERN = re.compile(
    r"\b(my|i am|i'm|i prefer|remember|always|never|i like|i hate|i use|i work)\b",
    re.IGNORECASE,
)


def is_semantic(user_text: str) -> bool:
    return SEMANTIC_PATTERN.search(user_text) is not None


def classify(user_text: str) -> Sector:
    return Sector.SEMANTIC if is_semantic(user_text) else Sector.EPISODIC


def should_store(
    user_text: str,
    min_length: int = settings.MEMORY_MIN_MESSAGE_LENGTH,
    command_prefix: str = settings.COMMAND_PREFIX,
) -> bool:
    """Commands are never stored; short chatter is skipped unless it states a fact."""
    if command_prefix and user_text.startswith(command_prefix):
        return False
    if len(user_text) <= min_length:
        return is_semantic(user_text)
    return True


def compose_content(
    user_text: str,
    assistant_text: str,
    limit: int = settings.MEMORY_TRUNCATE_CHARS,
) -> str:
    return f"User: {user_text[:limit]}\nAssistant: {assistant_text[:limit]}"
