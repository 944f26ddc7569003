# Run from project root: streamlit run inquiro/ui.py
# UI talks to the backend API (POST /api/search). The full transcript is sent with every question.

import os

import requests
import streamlit as st

# Backend config
API_BASE = os.environ.get("API_BASE", "http://localhost:8000")


def render_sources(sources: list[dict]) -> None:
    """Collapsible citation list under an assistant reply."""
    if not sources:
        return
    with st.expander(f"Sources ({len(sources)})"):
        for index, source in enumerate(sources, start=1):
            st.markdown(f"**Source {index}** · [View original thread]({API_BASE}/api/source/{source.get('id', '')})")
            st.markdown(f"*Client Query:* {source.get('question', '')}")
            st.markdown(f"*Firm Answer:* {source.get('answer', '')}")
            if index < len(sources):
                st.divider()


def ask(messages: list[dict]) -> dict:
    """POST the transcript; returns {"text", "sources"} or raises requests.RequestException."""
    payload = {"messages": [{"role": m["role"], "content": m["content"]} for m in messages]}
    r = requests.post(f"{API_BASE}/api/search", json=payload, timeout=90)
    r.raise_for_status()
    return r.json()


st.title("Inquiro")
st.caption("Ask questions about the firm's past client emails.")

if "messages" not in st.session_state:
    st.session_state.messages = []
if st.button("New chat", key="new_chat"):
    st.session_state.messages = []
    st.rerun()

for msg in st.session_state.messages:
    with st.chat_message(msg["role"]):
        st.markdown(msg["content"])
        if msg["role"] == "assistant":
            render_sources(msg.get("sources") or [])

# Second pass after a submit: the question is already shown, now fetch the answer
if st.session_state.get("pending_query"):
    with st.chat_message("assistant"):
        thinking = st.empty()
        thinking.caption("Thinking...")
        sources: list[dict] = []
        try:
            data = ask(st.session_state.messages)
            answer = data.get("text") or "No answer."
            sources = data.get("sources") or []
            thinking.empty()
            st.markdown(answer)
            render_sources(sources)
        except requests.HTTPError as e:
            detail = e.response.text[:200] if e.response is not None else str(e)
            answer = f"Error: {detail}"
            thinking.empty()
            st.error(answer)
        except requests.RequestException as e:
            answer = f"Connection failed: {e}"
            thinking.empty()
            st.error(answer)
        st.session_state.messages.append({"role": "assistant", "content": answer, "sources": sources})
    del st.session_state["pending_query"]
    st.rerun()

if prompt := st.chat_input("Ask a question about tax, expenses, licensing..."):
    st.session_state.messages.append({"role": "user", "content": prompt})
    st.session_state.pending_query = prompt
    st.rerun()
