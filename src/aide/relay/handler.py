"""
Message handling around the agent call.

A conversational turn retrieves memory context, relays the enriched prompt to
the agent, persists the agent thread, and records the turn. Turns of one
owner are serialised; different owners proceed concurrently.
"""
import asyncio
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Iterable, List, Optional
from aide.config import settings
from aide.logging import logger, owner_ctx
from aide.memory.service import MemoryService
from aide.models.memory import Memory
from aide.relay.agent import Agent
from aide.relay.sessions import SessionStore

HELP_TEXT = """\
Commands:
/memory - show what I remember about you
/forget - start a fresh conversation (alias /newchat)
/voice - toggle spoken replies
/chatid - show this conversation's id
/help - this message"""


@dataclass
class Reply:
    text: str
    as_voice: bool = False


@dataclass
class OwnerPreferences:
    voice_mode: bool = False


@dataclass
class PreferenceRegistry:
    """Per-owner toggles, handed to the handler rather than kept as globals."""
    by_owner: Dict[str, OwnerPreferences] = field(default_factory=dict)

    def get(self, owner: str) -> OwnerPreferences:
        return self.by_owner.setdefault(owner, OwnerPreferences())


def format_memory_listing(memories: Iterable[Memory]) -> str:
    lines = []
    for i, m in enumerate(memories, 1):
        date = m.accessed_at.strftime("%Y-%m-%d")
        lines.append(f"{i}. [{m.sector.value}] {m.content[:120]} ({date})")
    if not lines:
        return "No memories saved yet."
    return "\n\n".join(lines)


def compose_prompt(context: str, message: str) -> str:
    return f"{context}\n\n{message}" if context else message


class MessageHandler:
    def __init__(
        self,
        memory: MemoryService,
        agent: Agent,
        sessions: SessionStore,
        preferences: Optional[PreferenceRegistry] = None,
        allowed_owners: Iterable[str] = (),
        command_prefix: str = settings.COMMAND_PREFIX,
        voice_available: bool = False,
    ):
        self.memory = memory
        self.agent = agent
        self.sessions = sessions
        self.preferences = preferences or PreferenceRegistry()
        self.allowed_owners = set(allowed_owners)
        self.command_prefix = command_prefix
        self.voice_available = voice_available
        self._owner_locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._commands: Dict[str, Callable[[str], Awaitable[str]]] = {
            "start": self._cmd_help,
            "help": self._cmd_help,
            "chatid": self._cmd_chatid,
            "memory": self._cmd_memory,
            "forget": self._cmd_forget,
            "newchat": self._cmd_forget,
            "voice": self._cmd_voice,
        }

    def is_authorised(self, owner: str) -> bool:
        return not self.allowed_owners or owner in self.allowed_owners

    async def handle(self, owner: str, text: str, force_voice: bool = False) -> Reply:
        token = owner_ctx.set(owner)
        try:
            if not self.is_authorised(owner):
                logger.warning("Rejected message from unauthorised owner")
                return Reply("Not authorised.")
            if self.command_prefix and text.startswith(self.command_prefix):
                return Reply(await self.handle_command(owner, text))
            async with self._owner_locks[owner]:
                return await self._handle_turn(owner, text, force_voice)
        finally:
            owner_ctx.reset(token)

    async def handle_command(self, owner: str, text: str) -> str:
        words = text[len(self.command_prefix):].split()
        # Telegram style "/cmd@botname"
        name = words[0].split("@", 1)[0].lower() if words else ""
        command = self._commands.get(name)
        if command is None:
            return f"Unknown command. Send {self.command_prefix}help for a list."
        return await command(owner)

    async def _handle_turn(self, owner: str, text: str, force_voice: bool) -> Reply:
        context = await self.memory.build_context(owner, text)
        prompt = compose_prompt(context, text)

        session_id = await self.sessions.aget(owner)
        result = await self.agent.run(prompt, session_id)
        if result.session_id and result.session_id != session_id:
            await self.sessions.aset(owner, result.session_id)

        await self.memory.record_turn(owner, text, result.text)

        as_voice = self.voice_available and (force_voice or self.preferences.get(owner).voice_mode)
        return Reply(result.text, as_voice=as_voice)

    async def _cmd_help(self, owner: str) -> str:
        return HELP_TEXT

    async def _cmd_chatid(self, owner: str) -> str:
        return f"Your chat id: {owner}"

    async def _cmd_memory(self, owner: str) -> str:
        memories: List[Memory] = await self.memory.list_memories(owner, 10)
        return format_memory_listing(memories)

    async def _cmd_forget(self, owner: str) -> str:
        await self.sessions.aclear(owner)
        return "Session cleared. Starting fresh."

    async def _cmd_voice(self, owner: str) -> str:
        if not self.voice_available:
            return "Voice replies are not configured."
        prefs = self.preferences.get(owner)
        prefs.voice_mode = not prefs.voice_mode
        return "Voice mode ON" if prefs.voice_mode else "Voice mode OFF"
