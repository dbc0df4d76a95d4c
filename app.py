"""Web interface using Streamlit."""

import tempfile
from collections.abc import Iterator
from pathlib import Path

import streamlit as st

from docchat import ChatEngine, DocChatError
from docchat.config import config

config.setup_logging()
logger = config.get_logger(__name__)


class SessionState:
    """Centralized session state management."""

    @staticmethod
    def initialize() -> None:
        """Initialize all session state variables."""
        defaults = {
            "engine": None,
            "session_id": None,
            "last_result": None,
            "summary": None,
        }

        for key, default_value in defaults.items():
            if key not in st.session_state:
                st.session_state[key] = default_value

    @staticmethod
    def reset_session() -> None:
        """Forget the current chat session."""
        st.session_state.session_id = None
        st.session_state.last_result = None
        st.session_state.summary = None

    @staticmethod
    def is_system_ready() -> bool:
        return st.session_state.get("engine") is not None

    @staticmethod
    def has_session() -> bool:
        return st.session_state.get("session_id") is not None


def validate_configuration() -> bool:
    """Validate application configuration and show user feedback.

    Returns:
        bool: True if configuration is valid, False otherwise.
    """
    try:
        config.validate()
    except ValueError as e:
        st.error(f"Configuration Error: {e}")
        return False
    else:
        return True


def initialize_system() -> bool:
    """Create the chat engine and start its session cleanup.

    Returns:
        bool: True if initialization succeeds, False otherwise.
    """
    try:
        with st.spinner("Initializing system..."):
            engine = ChatEngine()
            engine.start()
            st.session_state.engine = engine

        logger.info("Chat engine initialized with %s provider", engine.provider.name)
        st.success("System initialized successfully!")

    except (ValueError, DocChatError) as e:
        logger.exception("Failed to initialize system")
        st.error(f"Failed to initialize system: {e}")
        return False
    else:
        return True


def _save_upload(uploaded_file) -> Path:  # noqa: ANN001
    with tempfile.NamedTemporaryFile(
        delete=False,
        suffix=Path(uploaded_file.name).suffix,
    ) as tmp_file:
        tmp_file.write(uploaded_file.getbuffer())
        return Path(tmp_file.name)


def process_document(uploaded_file) -> bool:  # noqa: ANN001
    """Extract an uploaded file into a new session, or add it to the current one.

    Returns:
        bool: True if document processing succeeds, False otherwise.
    """
    engine: ChatEngine = st.session_state.engine
    tmp_file_path = _save_upload(uploaded_file)
    try:
        with st.spinner(f"Processing '{uploaded_file.name}'..."):
            if SessionState.has_session():
                engine.add_document_from_file(
                    st.session_state.session_id,
                    tmp_file_path,
                    filename=uploaded_file.name,
                )
            else:
                session, _ = engine.upload_document(
                    tmp_file_path, filename=uploaded_file.name
                )
                st.session_state.session_id = session.id
        st.success(f"Document '{uploaded_file.name}' processed successfully!")

    except (OSError, ValueError, DocChatError) as e:
        logger.exception("Document processing failed")
        st.error(f"Failed to process document: {e}")
        return False
    else:
        return True
    finally:
        tmp_file_path.unlink(missing_ok=True)


def render_sidebar() -> None:
    """Render the sidebar with configuration, status and session controls."""
    with st.sidebar:
        st.header("System Configuration")

        if (
            st.button("Initialize System", use_container_width=True)
            and validate_configuration()
            and initialize_system()
        ):
            st.rerun()

        st.divider()
        st.subheader("System Status")
        config_status = "Valid" if validate_configuration() else "Invalid"
        st.write(f"**Configuration:** {config_status}")
        if SessionState.is_system_ready():
            st.write(f"**Provider:** {st.session_state.engine.provider.name}")
        else:
            st.write("**System:** Not Initialized")

        if not SessionState.has_session():
            return

        engine: ChatEngine = st.session_state.engine
        session_id = st.session_state.session_id
        try:
            documents = engine.list_documents(session_id)
        except DocChatError as e:
            # Expired by the inactivity sweep
            st.warning(e.message)
            SessionState.reset_session()
            return

        st.divider()
        st.subheader("Documents")
        for document in documents:
            col1, col2 = st.columns([4, 1])
            with col1:
                st.write(
                    f"{document.filename} ({document.page_count} pages, "
                    f"{len(document.chunks)} chunks)"
                )
            with col2:
                if st.button("✕", key=f"remove-{document.id}"):
                    engine.remove_document(session_id, document.id)
                    st.rerun()

        st.divider()
        st.subheader("Conversation")
        if st.button("Clear History", use_container_width=True):
            engine.clear_session(session_id)
            st.session_state.last_result = None
            st.success("Conversation cleared!")
            st.rerun()
        if st.button("New Session", use_container_width=True):
            engine.delete_session(session_id)
            SessionState.reset_session()
            st.rerun()


def render_document_upload() -> None:
    """Render document upload section."""
    st.header("Add a Document" if SessionState.has_session() else "Document Upload")
    uploaded_file = st.file_uploader(
        "Upload a PDF or TXT document",
        type=["pdf", "txt"],
        help="Upload a document to start asking questions about it",
    )
    if (
        uploaded_file
        and st.button("Process Document", use_container_width=True)
        and process_document(uploaded_file)
    ):
        st.rerun()


def _token_stream(question: str) -> Iterator[str]:
    """Yield answer fragments and keep the terminal event for display."""
    engine: ChatEngine = st.session_state.engine
    for event in engine.stream_answer(st.session_state.session_id, question):
        if event.kind == "token":
            yield event.data["content"]
        elif event.kind == "done":
            st.session_state.last_result = event.data
        else:
            st.error(f"{event.data['code']}: {event.data['message']}")


def render_chat_interface() -> None:
    """Render the main chat interface."""
    if not SessionState.has_session():
        return

    engine: ChatEngine = st.session_state.engine
    st.header("Ask Questions About Your Documents")

    for message in engine.get_history(st.session_state.session_id):
        with st.chat_message(message.role):
            st.write(message.content)
            if message.citations:
                pages = ", ".join(str(citation.page) for citation in message.citations)
                st.caption(f"Pages: {pages}")

    question = st.chat_input("Ask anything about your uploaded documents...")
    if question and question.strip():
        with st.chat_message("user"):
            st.write(question)
        st.session_state.last_result = None
        with st.chat_message("assistant"):
            st.write_stream(_token_stream(question))

        result = st.session_state.last_result
        if result:
            if not result["grounded"]:
                st.info("The answer could not be found in the documents.")
            for citation in result["citations"]:
                with st.expander(f"Page {citation['page']}", expanded=False):
                    st.write(citation["text"])


def render_summary() -> None:
    """Render the summary section."""
    if not SessionState.has_session():
        return

    st.markdown("---")
    if st.button("Summarize Documents", use_container_width=True):
        engine: ChatEngine = st.session_state.engine
        with st.spinner("Summarizing..."):
            try:
                st.session_state.summary = engine.generate_summary(
                    st.session_state.session_id
                )
            except DocChatError as e:
                logger.exception("Summary failed")
                st.error(f"Failed to summarize: {e.message}")

    summary = st.session_state.summary
    if summary:
        st.subheader("Summary")
        st.write(summary.summary)
        if summary.key_takeaways:
            st.markdown("**Key Takeaways**")
            for takeaway in summary.key_takeaways:
                st.markdown(f"- {takeaway}")
        if summary.main_topics:
            st.markdown("**Main Topics:** " + ", ".join(summary.main_topics))


def main() -> None:
    """Main entry point for the Streamlit web application."""
    st.set_page_config(page_title="DocChat", layout="wide")

    SessionState.initialize()

    st.title("DocChat - Chat With Your Documents")
    st.markdown("---")

    render_sidebar()

    if not SessionState.is_system_ready():
        st.info("Please initialize the system using the sidebar to get started.")
        return

    render_document_upload()
    render_chat_interface()
    render_summary()


if __name__ == "__main__":
    main()
