# main.py

"""Streamlit web UI for the document PII redaction system.

Paste a resume or document, review the detected entities, toggle which ones
to redact and copy the redacted text. Every change to the text or the
custom rules re-runs the full detection pipeline.
"""

import logging

import streamlit as st

from docredact.core.domain import CustomRule
from docredact.logging_config import configure_logging
from docredact.logic.export import apply_redactions
from docredact.service.config import settings
from docredact.service.pipeline import redact_text
from docredact.service.session import set_all_redact, toggle_redact

configure_logging(settings.log_level)

logger = logging.getLogger(__name__)


def _parse_rules(raw: str) -> list:
    """One regex per line; blank lines are ignored."""
    return [
        CustomRule(pattern=line.strip(), name=f"rule-{index}")
        for index, line in enumerate(raw.splitlines())
        if line.strip()
    ]


def _run_detection(text: str, raw_rules: str) -> None:
    key = (text, raw_rules)
    if st.session_state.get("detection_key") == key:
        return

    with st.spinner("Analyzing document..."):
        logger.info("Processing document", extra={"text_length": len(text)})
        result = redact_text(text, _parse_rules(raw_rules))

    st.session_state["detection_key"] = key
    st.session_state["result"] = result
    st.session_state["entities"] = result.candidates


def main():
    """Run the Streamlit application UI."""
    st.set_page_config(layout="wide", page_title="Document PII Redactor", page_icon="🛡️")

    st.title("Document PII Redactor")
    st.markdown(
        "Detect personal information in resumes and documents, review it, "
        "and export a redacted copy."
    )
    st.markdown("---")

    with st.sidebar:
        st.header("Custom Rules")
        raw_rules = st.text_area(
            "One regular expression per line",
            height=150,
            placeholder="Project\\s+Falcon",
        )

    col1, col2 = st.columns(2)

    with col1:
        st.subheader("Source Document")
        text_input = st.text_area(
            "Source Document",
            height=400,
            placeholder="Paste document text here...",
            label_visibility="collapsed",
        )

    if not text_input or not text_input.strip():
        with col2:
            st.info("Paste text to start detection.")
        return

    _run_detection(text_input, raw_rules)
    result = st.session_state["result"]

    if "error" in result.metadata:
        st.error(f"Detection failed: {result.metadata['error']}")
        logger.error(
            "Detection returned error status",
            extra={"status": "failed", "text_length": len(text_input)},
        )
        return

    if result.metadata.get("ml_status") not in ("ok", "disabled"):
        st.warning(
            "Name, organization and location detection is unavailable; "
            "showing pattern matches only."
        )

    with col2:
        st.subheader("Detected Entities")
        all_on, all_off = st.columns(2)
        if all_on.button("Redact all"):
            st.session_state["entities"] = set_all_redact(st.session_state["entities"], True)
        if all_off.button("Keep all"):
            st.session_state["entities"] = set_all_redact(st.session_state["entities"], False)

        for entity in st.session_state["entities"]:
            label = f"{entity.type}: {entity.value}  ({entity.reason})"
            checked = st.checkbox(label, value=entity.redact, key=f"redact-{entity.id}-{entity.redact}")
            if checked != entity.redact:
                st.session_state["entities"] = toggle_redact(
                    st.session_state["entities"], entity.id
                )
                st.rerun()

    st.markdown("---")
    st.subheader("Redacted Output")
    st.text_area(
        "Redacted Document",
        value=apply_redactions(text_input, st.session_state["entities"]),
        height=400,
    )


if __name__ == "__main__":
    main()
