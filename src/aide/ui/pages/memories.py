import streamlit as st
from aide.memory import SearchDegradedError, extract_keywords
from aide.ui.state import get_owner, get_store, set_owner

st.title("Memories")

store = get_store()

owner = st.text_input("Owner", value=get_owner() or "", placeholder="e.g. a chat id")
set_owner(owner)
if not owner:
    st.warning("Enter an owner to browse their memories.")
    st.stop()

st.metric("Stored memories", store.count(owner))

# --- Maintenance ---
if st.button("Run decay sweep now"):
    result = store.decay_and_prune()
    if result is None:
        st.info("A sweep is already running. Try again shortly.")
    else:
        st.success(f"{result.decayed} decayed, {result.pruned} pruned.")

st.divider()

# --- Search ---
query = st.text_input("Keyword search", placeholder="e.g. 'coffee roast'")
if query:
    keywords = extract_keywords(query)
    if not keywords:
        st.info("No searchable keywords in query.")
    else:
        try:
            hits = store.search_by_keywords(owner, keywords, limit=20)
        except SearchDegradedError as e:
            st.error(f"Search failed: {e}")
            hits = []
        st.subheader(f"Results ({len(hits)})")
        for m in hits:
            with st.container(border=True):
                st.markdown(f"**#{m.id}** · _{m.sector.value}_ · salience `{m.salience:.2f}`")
                st.text(m.content)

# --- Listing ---
st.subheader("Most salient")
limit = st.slider("Show", min_value=5, max_value=100, value=20, step=5)
for m in store.for_owner(owner, limit):
    with st.container(border=True):
        st.markdown(
            f"**#{m.id}** · _{m.sector.value}_ · salience `{m.salience:.2f}` · "
            f"accessed {m.accessed_at:%Y-%m-%d %H:%M}"
        )
        st.text(m.content)
