import re

from lessonkit.render.macros import LINE_BREAK_MARKER, normalize_macros


def test_itemize_becomes_bullet_list():
    out = normalize_macros(r"\begin{itemize}\item a\item b\end{itemize}")
    assert out == "\n- a\n- b\n\n"


def test_enumerate_becomes_ordered_list():
    out = normalize_macros(r"\begin{enumerate}\item x \item y\end{enumerate}")
    assert out == "\n1. x\n2. y\n\n"


def test_nested_lists_are_indented():
    src = r"\begin{itemize}\item a\begin{enumerate}\item b\end{enumerate}\end{itemize}"
    assert normalize_macros(src) == "\n- a\n  1. b\n\n"


def test_inline_macros():
    assert normalize_macros(r"\textbf{Gras} et \textit{italique}") == "**Gras** et *italique*"
    assert normalize_macros(r"\emph{mot}") == "*mot*"
    assert normalize_macros(r"\underline{x}") == "<u>x</u>"
    assert normalize_macros(r"\textbf{\textit{x}}") == "***x***"
    assert normalize_macros(r"a\textbf{ }b") == "ab"


def test_headings():
    assert normalize_macros(r"\section{Intro}") == "\n## Intro\n"
    assert normalize_macros(r"\subsection*{A}") == "\n### A\n"
    assert normalize_macros(r"\subsubsection{B}") == "\n#### B\n"


def test_line_breaks():
    assert normalize_macros(r"a \\ b") == f"a {LINE_BREAK_MARKER} b"
    assert normalize_macros(r"a\\[2pt]b") == f"a{LINE_BREAK_MARKER}b"
    assert normalize_macros(r"a\newline b") == f"a{LINE_BREAK_MARKER} b"


def test_math_spans_are_untouched():
    src = r"\textbf{Note} $\textbf{x} \\ y$ et $$\begin{itemize}\item z\end{itemize}$$"
    out = normalize_macros(src)
    assert out.startswith("**Note** ")
    assert r"$\textbf{x} \\ y$" in out
    assert r"$$\begin{itemize}\item z\end{itemize}$$" in out


def test_output_has_no_recognized_macros_and_rerun_is_noop():
    src = (
        "\\section{Cours}\n"
        "\\textbf{Définition} : \\emph{suite}.\\\\\n"
        "\\begin{enumerate}\\item un \\item \\textit{deux}\\end{enumerate}\n"
        "Fin $\\frac{1}{2}$."
    )
    out = normalize_macros(src)
    outside = re.sub(r"\$[^$]*\$", "", out)
    for macro in ("\\section", "\\textbf", "\\emph", "\\textit", "\\begin", "\\item", "\\\\"):
        assert macro not in outside
    assert normalize_macros(out) == out


def test_block_macro_inside_inline_macro_converges_in_one_run():
    out = normalize_macros("\\textbf{\\section{Résumé}}")
    assert "\\textbf" not in out
    assert "\\section" not in out
    assert "Résumé" in out
    assert normalize_macros(out) == out
