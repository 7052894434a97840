from __future__ import annotations

import streamlit as st
from dotenv import load_dotenv

from tool_chat.core.errors import ConfigError, ToolChatError
from tool_chat.core.factory import get_llm_provider, get_registry
from tool_chat.core.messages import Role
from tool_chat.orchestrators.conversation import Conversation, ConversationConfig

# Load .env once per Streamlit server start
load_dotenv()

st.set_page_config(page_title="Tool Chat", page_icon="🛠️", layout="wide")

st.title("🛠️ Tool Chat")
st.caption("Chat with an LLM that can call local tools (weather, jokes) before it answers.")


def new_conversation(provider: str, llm_jokes: bool) -> Conversation:
    llm = get_llm_provider(provider)
    return Conversation(
        llm=llm,
        registry=get_registry(llm, llm_jokes=llm_jokes),
        config=ConversationConfig.from_env(),
    )


# ---- Sidebar controls ----
with st.sidebar:
    st.header("Provider")
    provider = st.selectbox("LLM Provider", ["openai", "ollama"], index=0)
    llm_jokes = st.checkbox(
        "LLM-backed joke tool",
        value=False,
        help="Registers write_joke, whose handler makes its own LLM call.",
    )

    # One Conversation per browser session; rebuilt when the settings change.
    settings = (provider, llm_jokes)
    reset = st.button("New conversation", use_container_width=True)
    if reset or st.session_state.get("chat_settings") != settings:
        try:
            st.session_state["conversation"] = new_conversation(provider, llm_jokes)
            st.session_state["chat_settings"] = settings
            st.session_state["tool_traces"] = []
        except ConfigError as e:
            st.session_state.pop("conversation", None)
            st.session_state["chat_settings"] = None
            st.error(f"**Configuration error:** {e}")

    conversation = st.session_state.get("conversation")
    if conversation is not None:
        st.divider()
        st.subheader("Tools")
        for tool in conversation.registry:
            st.caption(f"**{tool.name}**: {tool.description}")

if conversation is None:
    st.info("Fix the configuration in your `.env` file and reload the page.")
    st.stop()

# ---- Transcript ----
for message in conversation.transcript:
    if message.role is Role.USER:
        st.chat_message("user").write(message.content)
    elif message.role is Role.ASSISTANT and message.tool_call is None:
        st.chat_message("assistant").write(message.content)
    elif message.role is Role.TOOL:
        with st.chat_message("assistant", avatar="🛠️"):
            st.caption(f"{message.name} returned")
            st.code(message.content)

user_text = st.chat_input("Ask about the weather or for a joke")
if user_text:
    st.chat_message("user").write(user_text)
    try:
        with st.spinner("Thinking..."):
            result = conversation.run_turn(user_text)
    except ToolChatError as e:
        st.error(f"**Turn failed ({type(e).__name__})**")
        st.markdown(f"```\n{e}\n```")
        st.caption("The conversation was left unchanged; you can send the message again.")
    else:
        st.session_state["tool_traces"] = result.tool_traces
        st.rerun()

traces = st.session_state.get("tool_traces", [])
if traces:
    with st.expander(f"Last turn: {len(traces)} tool call{'s' if len(traces) != 1 else ''}"):
        for trace in traces:
            state = "error" if trace.error else "complete"
            with st.status(trace.tool_name, state=state):
                st.markdown("**Arguments:**")
                st.code(trace.arguments or "{}", language="json")
                st.markdown("**Result:**")
                st.code(trace.result)
                st.caption(f"Elapsed: {trace.elapsed_ms:.1f} ms")
