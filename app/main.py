import sys
import os
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import html
import re

import streamlit as st

from lexicompare.comparison import ComparisonError
from lexicompare.config import configure_logging, load_settings
from lexicompare.exporter import (
    EXPORT_FILENAME,
    display_column_names,
    export_to_csv,
    export_to_json,
    matches_to_dataframe,
    results_to_display_frame,
)
from lexicompare.session import ComparisonSession, ContentState

settings = load_settings()
configure_logging(settings)

st.set_page_config(page_title="LexiCompare", layout="wide")
st.title("📑 LexiCompare")
st.caption(
    "Upload your documents, designate a master file to extract terms, "
    "and see where those terms appear across all your files."
)

if "session" not in st.session_state:
    st.session_state.session = ComparisonSession(
        include_master=settings.include_master,
        max_workers=settings.max_workers,
    )
session: ComparisonSession = st.session_state.session


def highlight(text: str, term: str) -> str:
    """HTML-escaped line with every case-insensitive occurrence of term marked."""
    pattern = re.compile(re.escape(term), re.IGNORECASE)
    parts = []
    last = 0
    for m in pattern.finditer(text):
        parts.append(html.escape(text[last:m.start()]))
        parts.append(f"<mark>{html.escape(m.group(0))}</mark>")
        last = m.end()
    parts.append(html.escape(text[last:]))
    return "".join(parts)


# ---------------- 1. Upload Files ----------------
st.sidebar.header("1. Upload Files")
uploads = st.sidebar.file_uploader(
    "Add documents to compare", accept_multiple_files=True,
    type=settings.upload_types,
)

if st.sidebar.button("📥 Add Files"):
    if not uploads:
        st.sidebar.error("Upload at least one file.")
    else:
        progress_bar = st.sidebar.progress(0)
        failures = []
        for i, upload in enumerate(uploads):
            failures.extend(session.add_files([upload]))
            progress_bar.progress((i + 1) / len(uploads))
        for failure in failures:
            st.sidebar.error(f"❌ Could not read content from {failure.name}: {failure.reason}")
        added = len(uploads) - len(failures)
        if added:
            st.sidebar.success(f"✅ Added {added} file(s)")

if session.files:
    st.sidebar.subheader("Files")
    for f in session.files:
        col1, col2 = st.sidebar.columns([4, 1])
        with col1:
            label = f"⭐ {f.name}" if f.id == session.master_file_id else f.name
            st.write(label)
            if f.state is ContentState.FAILED:
                st.caption(f"⚠️ Partial content: {f.error}")
        with col2:
            if st.button("🗑️", key=f"delete_{f.id}", help=f"Remove {f.name}"):
                session.remove_file(f.id)
                st.rerun()

    file_ids = [f.id for f in session.files]
    names = {f.id: f.name for f in session.files}
    current = session.master_file_id
    choice = st.sidebar.selectbox(
        "Master file",
        options=[None] + file_ids,
        index=(file_ids.index(current) + 1) if current in file_ids else 0,
        format_func=lambda fid: "— none —" if fid is None else names[fid],
    )
    if choice != current:
        with st.spinner("Extracting terms..."):
            terms = session.set_master(choice)
        master = session.master_file
        notices = []
        if master is not None:
            if master.state is ContentState.FAILED:
                notices.append(f"⚠️ Term extraction from {master.name} was incomplete: {master.error}")
            if not terms:
                notices.append(f"No terms found in {master.name}")
        # Shown after the rerun below, which would otherwise clear them
        st.session_state.master_notices = notices
        st.rerun()

    for notice in st.session_state.pop("master_notices", []):
        st.sidebar.warning(notice)
else:
    st.sidebar.info("No files uploaded yet.")

# ---------------- 2. Select Terms ----------------
st.header("2. Select Terms")
if session.master_file is None:
    st.info("Select a master file to extract terms.")
else:
    session.manual_terms = st.text_input(
        "Add manual terms (comma-separated)",
        value=session.manual_terms,
        placeholder="e.g. keyword1, another keyword",
    )

    col1, col2, col3 = st.columns([4, 1, 1])
    with col2:
        if st.button("Select All", disabled=not session.extracted_terms):
            session.select_all()
            st.session_state.term_selection = list(session.selected_terms)
    with col3:
        if st.button("Deselect All", disabled=not session.extracted_terms):
            session.deselect_all()
            st.session_state.term_selection = []
    with col1:
        st.write(f"**Extracted terms from {session.master_file.name}**: "
                 f"{len(session.selected_terms)} of {len(session.extracted_terms)} selected")

    if st.session_state.get("term_master") != session.master_file_id:
        st.session_state.term_master = session.master_file_id
        st.session_state.term_selection = list(session.selected_terms)

    selection = st.multiselect(
        "Terms",
        options=session.extracted_terms,
        key="term_selection",
    )
    session.select_terms(selection)

# ---------------- 3. Run Comparison ----------------
st.header("3. Run Comparison")
working = session.terms
st.caption(f"{len(working)} term(s) across {len(session.comparison_files())} file(s)")

if st.button("🔍 Run Comparison", type="primary", disabled=not session.files or not working):
    progress_bar = st.progress(0)
    status_text = st.empty()

    def on_progress(done, total):
        progress_bar.progress(done / total)
        status_text.text(f"Scanned {done}/{total} files...")

    try:
        session.run_comparison(progress_callback=on_progress)
    except ComparisonError as e:
        st.error(f"❌ {e}")
    else:
        status_text.empty()
        for f in session.comparison_files():
            if f.state is ContentState.FAILED:
                st.warning(f"⚠️ {f.name}: compared using partial content ({f.error})")

result = session.result
if result is not None:
    st.subheader("📊 Comparison Results")
    df = results_to_display_frame(result)
    st.dataframe(df, use_container_width=True)

    col1, col2 = st.columns(2)
    with col1:
        st.download_button(
            "📥 Export to CSV",
            export_to_csv(result).encode("utf-8"),
            EXPORT_FILENAME,
            mime="text/csv",
        )
    with col2:
        st.download_button(
            "📥 Download Matches JSON",
            export_to_json(result).encode("utf-8"),
            "lexicompare_matches.json",
            mime="application/json",
        )

    st.subheader("🔍 Term Context")
    detail = matches_to_dataframe(result)
    if detail.empty:
        st.info("None of the terms were found in any file.")
    else:
        term = st.selectbox("Term", options=[t for t in result.terms if result.found_count(t)])
        for f, label in zip(result.files, display_column_names(result)):
            cell = result.cell(term, f.id)
            if not cell.found:
                continue
            with st.expander(f"{label} ({len(cell.matches)} line(s))"):
                for match in cell.matches:
                    st.markdown(
                        f"`{match.line_number}` {highlight(match.context, term)}",
                        unsafe_allow_html=True,
                    )
