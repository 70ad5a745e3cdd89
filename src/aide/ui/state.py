import streamlit as st
from typing import Optional
from aide.db import engine
from aide.memory import MemoryStore

# Page scripts rerun on every interaction but this module is imported once,
# so all sessions share one store and its sweep lock.
_store: Optional[MemoryStore] = None

def init_session():
    """Initialize session state variables."""
    if "owner" not in st.session_state:
        st.session_state["owner"] = None

def get_owner() -> Optional[str]:
    """Get currently selected owner."""
    return st.session_state.get("owner")

def set_owner(owner: Optional[str]):
    """Set currently selected owner."""
    st.session_state["owner"] = owner or None

def get_store() -> MemoryStore:
    global _store
    if _store is None:
        _store = MemoryStore(engine)
    return _store
