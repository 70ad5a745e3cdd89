from aide.relay.agent import Agent, AgentReply
from aide.relay.handler import MessageHandler, Reply, OwnerPreferences, PreferenceRegistry
from aide.relay.sessions import SessionStore

__all__ = [
    "Agent",
    "AgentReply",
    "MessageHandler",
    "Reply",
    "OwnerPreferences",
    "PreferenceRegistry",
    "SessionStore",
]
