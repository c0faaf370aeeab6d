# -*- coding: utf-8 -*-
from __future__ import annotations

import json

import streamlit as st
import streamlit.components.v1 as components

from lessonkit.capture.driver import capture_html
from lessonkit.config import load_settings
from lessonkit.exceptions import LessonKitError
from lessonkit.render.models import FindingKind
from lessonkit.render.pipeline import render_page
from lessonkit.render.validator import sanitize, validate

S = {
    "title": "lessonkit",
    "source": "Document (Markdown + LaTeX, or lesson/exercise JSON)",
    "upload": "Upload a .md / .tex / .json file",
    "sanitize_first": "Sanitize before rendering",
    "preview": "Preview",
    "report": "Validation",
    "html": "HTML",
    "pdf": "Build PDF",
    "download_pdf": "Download PDF",
    "reject": "This content would be rejected at the generation boundary.",
    "clean": "No findings.",
}

_SAMPLE = r"""## Introduction

La fonction $\ln$ est définie sur $]0, +\infty[$.

## Théorème fondamental

\textbf{Propriété :} pour tous $a, b > 0$, \[ \ln(ab) = \ln a + \ln b \]

\begin{itemize}
\item $\ln 1 = 0$
\item $\ln e = 1$
\end{itemize}

## Exemple

Calculer $\ln(e^2)$.
"""


def _parse_source(raw: str):
    stripped = raw.strip()
    if stripped.startswith("{"):
        try:
            return json.loads(stripped)
        except ValueError:
            st.warning("Input looks like JSON but does not parse; rendering it as text.")
    return raw


def _render_report(text: str, settings) -> None:
    report = validate(
        text,
        min_sentence_length=settings.min_sentence_length,
        malformed_math_threshold=settings.malformed_math_threshold,
    )
    if report.should_reject:
        st.error(S["reject"])
    elif report.is_valid:
        st.success(S["clean"])
    for kind in FindingKind:
        found = report.by_kind(kind)
        if not found:
            continue
        with st.expander(f"{kind.value} ({len(found)})", expanded=report.should_reject):
            for f in found:
                st.markdown(f"- `{f.detail}`")


def main() -> None:
    st.set_page_config(page_title=S["title"], layout="wide")
    settings = load_settings()

    with st.sidebar:
        st.header(S["title"])
        up = st.file_uploader(S["upload"], type=["md", "tex", "txt", "json"])
        do_sanitize = st.checkbox(S["sanitize_first"], value=False)
        title = st.text_input("Title", value="Document")

    if up is not None:
        st.session_state["source_text"] = bytes(up.getbuffer()).decode("utf-8", errors="replace")
    raw = st.text_area(S["source"], value=st.session_state.get("source_text", _SAMPLE), height=260)

    text = raw
    if do_sanitize:
        result = sanitize(raw)
        text = result.text
        if result.was_modified:
            st.info("Sanitizer modified the input.")

    page = render_page(_parse_source(text), title=title, settings=settings)

    tabs = st.tabs([S["preview"], S["report"], S["html"]])
    with tabs[0]:
        components.html(page, height=900, scrolling=True)
    with tabs[1]:
        _render_report(text, settings)
    with tabs[2]:
        st.code(page, language="html")

    if st.button(S["pdf"]):
        with st.spinner("Capturing..."):
            try:
                captured = capture_html(page, settings=settings)
            except LessonKitError as e:
                st.error(str(e))
                return
        for w in captured.warnings:
            st.warning(w)
        st.caption(f"{captured.page_count} page(s)")
        st.download_button(S["download_pdf"], data=captured.pdf, file_name=f"{title or 'document'}.pdf", mime="application/pdf")


if __name__ == "__main__":
    main()
