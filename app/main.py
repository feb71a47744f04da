"""
Streamlit Frontend for the AI Bookkeeping Assistant

A chat page over one ConversationController per browser session.

DESIGN PRINCIPLES:
1. One conversation per browser session, never shared
2. Explicit confirmation before any ledger change
3. Clear, friendly error messages
4. Nothing happens that the user didn't see

The UI enforces the human-in-the-loop principle:
- Suggested actions are shown as forms
- The user approves, edits or skips them
- Nothing is saved without an answer
"""

import asyncio

import streamlit as st

from src.config import validate_all_settings
from src.models.chat import ExitSignal, TurnResult
from src.orchestrator import ChatState, ConversationController, create_app_components


# Page configuration
st.set_page_config(
    page_title="AI Bookkeeping",
    page_icon="🤖",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
    }
    .confirm-lines {
        font-family: monospace;
        white-space: pre-wrap;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def get_controller() -> ConversationController:
    """Get or create this browser session's controller."""
    if "controller" not in st.session_state:
        try:
            controller = create_app_components(use_storage=True)
        except Exception as e:
            st.error(f"Failed to initialize: {e}")
            st.info("Check your `.env` file, then reload the page.")
            st.stop()
        run_async(controller.start())
        st.session_state.controller = controller
        st.session_state.messages = []
        st.session_state.form_counter = 0
    return st.session_state.controller


def add_message(role: str, content: str):
    st.session_state.messages.append({"role": role, "content": content})


def reset_conversation():
    for key in ("controller", "messages", "form_counter"):
        st.session_state.pop(key, None)


def main():
    """Main application entry point."""
    st.sidebar.title("🤖 AI Bookkeeping")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["💬 Chat", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    st.sidebar.markdown(
        """
        **Ask things like:**
        - "What transactions need categorizing?"
        - "Show me expenses from last week"

        **Or type a command:**
        - `/status`, `/transactions`, `/categorize`
        - `/` alone lists every command
        """
    )

    if page == "💬 Chat":
        controller = get_controller()
        st.sidebar.markdown("---")
        if st.sidebar.button("🧹 Clear conversation"):
            if controller.state != ChatState.TERMINATED:
                run_async(controller.clear_history())
            st.session_state.messages = []
            st.rerun()
        render_chat_page(controller)
    elif page == "⚙️ Settings":
        render_settings_page()


def render_chat_page(controller: ConversationController):
    """Render the chat page."""
    st.title("💬 AI Bookkeeping Assistant")
    st.caption("Mix natural language with slash commands.")

    for message in st.session_state.messages:
        with st.chat_message(message["role"]):
            st.markdown(message["content"])

    if controller.state == ChatState.TERMINATED:
        st.info("This conversation has ended.")
        if st.button("🔄 Start a new conversation"):
            reset_conversation()
            st.rerun()
        return

    if controller.has_pending_actions:
        render_pending_action(controller)

    prompt = st.chat_input("Ask about your finances, or type / for commands")
    if prompt:
        add_message("user", prompt)
        with st.spinner("Thinking..."):
            result = run_async(controller.handle_line(prompt))

        if isinstance(result, ExitSignal):
            add_message("assistant", f"👋 {result.farewell}")
        elif isinstance(result, TurnResult):
            add_message("assistant", result.reply_text)
        st.rerun()


def render_pending_action(controller: ConversationController):
    """Render the next suggested action as a confirmation form."""
    request = controller.pending_request()

    if request is None:
        # Nothing to ask; apply right away
        outcome = run_async(controller.answer_pending(""))
        if outcome is not None:
            add_message("assistant", outcome.message)
        st.rerun()

    form_key = f"pending_{st.session_state.form_counter}"
    with st.form(key=form_key):
        st.markdown(f"**{request.question}**")
        if request.lines:
            st.markdown(
                f'<div class="confirm-lines">{"<br>".join(request.lines)}</div>',
                unsafe_allow_html=True,
            )

        if request.yes_no:
            col1, col2 = st.columns(2)
            with col1:
                accepted = st.form_submit_button("✅ Yes", type="primary")
            with col2:
                declined = st.form_submit_button("❌ No")
            answer = "yes" if accepted else "no" if declined else None
        else:
            reply = st.text_input(
                "Your answer",
                placeholder="approve all except 2, categorize that as office supplies",
            )
            col1, col2 = st.columns(2)
            with col1:
                applied = st.form_submit_button("✅ Apply", type="primary")
            with col2:
                skipped = st.form_submit_button("⏭️ Skip")
            answer = (reply or "approve all") if applied else "no" if skipped else None

    if answer is not None:
        add_message("user", answer)
        with st.spinner("Saving..."):
            outcome = run_async(controller.answer_pending(answer))
        if outcome is not None:
            add_message("assistant", outcome.message)
        st.session_state.form_counter += 1
        st.rerun()


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()

    services = [
        ("Gemini (AI)", "gemini"),
        ("Google Sheets (Storage)", "google_sheets"),
        ("Chat", "chat"),
        ("Application", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your API keys. "
        "See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()
