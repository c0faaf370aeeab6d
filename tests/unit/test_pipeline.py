from lessonkit.capture.agent import READY_MARKER_ID
from lessonkit.render import typeset
from lessonkit.render.models import SectionCategory
from lessonkit.render.pipeline import build_tree, prepare_text, render_document, render_page


def test_prepare_text_runs_delimiters_then_macros():
    out = prepare_text(r"\section{Intro} \textbf{x} \(a\)")
    assert "## Intro" in out
    assert "**x**" in out
    assert "$a$" in out


def test_math_is_preserved_through_prepare_text():
    out = prepare_text(r"$\textbf{a} \\ b$ \textbf{c}")
    assert r"$\textbf{a} \\ b$" in out
    assert "**c**" in out


def test_itemize_builds_two_item_list():
    doc = build_tree(r"\begin{itemize}\item a\item b\end{itemize}")
    assert len(doc.children) == 1
    lst = doc.children[0]
    assert lst.kind == "list"
    assert not lst.ordered
    assert len(lst.items) == 2


def test_figure_macro_becomes_image_node():
    doc = build_tree(r"\figure{img.png}{width=0.5\linewidth}")
    para = doc.children[0]
    assert para.kind == "paragraph"
    img = para.children[0]
    assert img.kind == "image"
    assert img.path == "/uploads/img.png"
    assert img.width == "50%"
    assert img.max_width == "100%"


def test_headings_become_sections():
    src = "## Théorème de Pythagore\n\nPremier paragraphe.\n\nSecond paragraphe.\n\n## Exemple\n\nUn triangle."
    doc = build_tree(src)
    assert [n.category for n in doc.children] == [SectionCategory.THEOREM, SectionCategory.EXAMPLE]
    assert [c.kind for c in doc.children[0].children] == ["heading", "paragraph", "paragraph"]


def test_render_document_html():
    src = "## Définition\n\nSoit $x > 0$.\n\n$$\\frac{1}{x}$$\n\n\\includegraphics[width=3cm]{f.png}"
    html = render_document(src)
    assert html.startswith('<div class="markdown-content">')
    assert '<section class="lesson-box box-definition" data-category="definition">' in html
    assert "<math" in html
    assert 'src="/uploads/f.png"' in html
    assert "width: 113px" in html
    assert "max-width: 100%" in html


def test_render_document_from_lesson_record():
    lesson = {
        "title": "Suites",
        "definitions": [{"term": "Suite", "definition": "Une fonction de $\\mathbb{N}$ dans $\\mathbb{R}$."}],
        "exercises": [{"question": "Q ?", "hints": ["h"], "solution": "S"}],
    }
    html = render_document(lesson)
    assert "box-definition" in html
    assert "box-exercise" in html
    assert "<details>" in html


def test_math_failure_degrades_to_source(monkeypatch):
    def _boom(*args, **kwargs):
        raise ValueError("unsupported")

    monkeypatch.setattr(typeset, "latex2mathml_convert", _boom)
    html = render_document("Soit $x<1$.")
    assert "math-error" in html
    assert "\\(x&lt;1\\)" in html


def test_render_page_carries_agent_and_print_css():
    page = render_page("Bonjour", title="Cours <1>")
    assert page.startswith("<!DOCTYPE html>")
    assert "<title>Cours &lt;1&gt;</title>" in page
    assert "@page { size: A4; margin: 0; }" in page
    assert READY_MARKER_ID in page
    assert "<script>" in page
    assert ".box-theorem" in page
