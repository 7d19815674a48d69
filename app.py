"""Chat interface using Streamlit."""

import streamlit as st

from kbassist import RAGPipeline
from kbassist.config import config

config.setup_logging()
logger = config.get_logger(__name__)


class SessionState:
    """Centralized session state management."""

    @staticmethod
    def initialize() -> None:
        """Initialize all session state variables."""
        defaults = {
            "pipeline": None,
            "messages": [],
        }

        for key, default_value in defaults.items():
            if key not in st.session_state:
                st.session_state[key] = default_value

    @staticmethod
    def clear_conversation() -> None:
        st.session_state.messages = []

    @staticmethod
    def is_system_ready() -> bool:
        """Check if the pipeline is initialized.

        Returns:
            bool: True if the pipeline has been built, False otherwise.
        """
        return st.session_state.get("pipeline") is not None


def initialize_system() -> bool:
    """Build the answering pipeline once per session.

    Returns:
        bool: True if initialization succeeds, False otherwise.
    """
    try:
        with st.spinner("Loading knowledge base..."):
            st.session_state.pipeline = RAGPipeline.from_config()
    except ValueError as e:
        logger.exception("Configuration invalid")
        st.error(f"Configuration Error: {e}")
        return False
    except (OSError, RuntimeError) as e:
        logger.exception("Failed to initialize system")
        st.error(f"Failed to initialize system: {e}")
        return False
    else:
        logger.info("Pipeline initialized successfully")
        return True


def render_sidebar() -> None:
    """Render the sidebar with system status and conversation controls."""
    with st.sidebar:
        st.header(f"{config.ASSISTANT_NAME} Assistant")

        st.subheader("System Status")
        if SessionState.is_system_ready():
            pipeline = st.session_state.pipeline
            st.write("**System:** Ready")
            st.write(f"**Indexed chunks:** {pipeline.retriever.vector_store.count()}")
        else:
            st.write("**System:** Not Initialized")
        st.write(f"**Chat model:** {config.CHAT_MODEL}")
        st.write(f"**Embedding model:** {config.EMBEDDING_MODEL}")

        st.divider()
        if st.button("Clear conversation", use_container_width=True):
            SessionState.clear_conversation()
            st.rerun()


def render_sources(sources: list[dict]) -> None:
    with st.expander(f"Sources ({len(sources)})", expanded=False):
        for i, source in enumerate(sources, start=1):
            label = source["source"]
            if source.get("row") is not None:
                label += f", row {source['row']}"
            st.markdown(f"**{i}. {label}**")
            st.code(source["text"])


def render_messages() -> None:
    for message in st.session_state.messages:
        with st.chat_message(message["role"]):
            st.markdown(message["content"])
            if message.get("sources"):
                render_sources(message["sources"])


def answer(question: str) -> None:
    """Answer ``question`` using the turns so far as conversation history."""
    history = [
        {"role": message["role"], "content": message["content"]}
        for message in st.session_state.messages
    ]
    st.session_state.messages.append({"role": "user", "content": question})
    with st.chat_message("user"):
        st.markdown(question)

    with st.chat_message("assistant"), st.spinner("Thinking..."):
        try:
            result = st.session_state.pipeline.run_rag(question, history)
        except (ValueError, RuntimeError) as e:
            logger.exception("Question processing failed")
            st.error(f"Sorry, something went wrong: {e}")
            return

        st.markdown(result.answer)
        sources = [source.to_dict() for source in result.sources or []]
        if sources:
            render_sources(sources)

    st.session_state.messages.append({
        "role": "assistant",
        "content": result.answer,
        "sources": sources,
    })


def main() -> None:
    """Main entry point for the Streamlit chat application."""
    st.set_page_config(page_title=f"{config.ASSISTANT_NAME} - Product Assistant")

    SessionState.initialize()

    st.title(f"Chat with {config.ASSISTANT_NAME}")

    if not SessionState.is_system_ready() and not initialize_system():
        st.info("Set OPENAI_API_KEY and ingest a knowledge base to get started.")
        return

    render_sidebar()
    render_messages()

    question = st.chat_input("Ask about our products...")
    if question and question.strip():
        answer(question.strip())


if __name__ == "__main__":
    main()
