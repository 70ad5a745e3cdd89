import streamlit as st
from aide.ui.validation import run_all_checks
from aide.ui.state import init_session

st.set_page_config(
    page_title="aide memory",
    page_icon="🧠",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Browsing memories needs the schema and the FTS table; stop before any page
# touches them.
problems = run_all_checks()
if problems:
    st.error("🚨 aide cannot open its memory store")
    for problem in problems:
        st.write(f"- {problem}")
    st.caption("Run `aide db init` (or `aide doctor`) and reload.")
    st.stop()

init_session()

st.sidebar.title("aide")
st.sidebar.caption("Long-term memory browser")

pages = st.navigation([
    st.Page("src/aide/ui/pages/memories.py", title="Memories", icon="🧠"),
])
pages.run()
