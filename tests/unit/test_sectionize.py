from lessonkit.render.models import Heading, Paragraph, SectionCategory, Text, count_nodes
from lessonkit.render.sectionize import categorize_heading, sectionize


def _h(level, text):
    return Heading(level=level, children=[Text(value=text)])


def _p(text):
    return Paragraph(children=[Text(value=text)])


def test_categorize_heading():
    assert categorize_heading("Théorème de Pythagore") == SectionCategory.THEOREM
    assert categorize_heading("2. Définitions") == SectionCategory.DEFINITION
    assert categorize_heading("EXERCICES D'APPLICATION") == SectionCategory.EXERCISE
    assert categorize_heading("Erreurs Courantes à Éviter") == SectionCategory.ALERT
    assert categorize_heading("Autre chose") == SectionCategory.GENERIC


def test_theorem_then_example():
    nodes = [_h(2, "Théorème de Pythagore"), _p("a"), _p("b"), _h(2, "Exemple"), _p("c")]
    out = sectionize(nodes)
    assert [s.kind for s in out] == ["section", "section"]
    assert [s.category for s in out] == [SectionCategory.THEOREM, SectionCategory.EXAMPLE]
    assert len(out[0].children) == 3
    assert len(out[1].children) == 2


def test_content_before_first_heading_stays_top_level():
    nodes = [_p("préambule"), _h(3, "Introduction"), _p("x")]
    out = sectionize(nodes)
    assert out[0].kind == "paragraph"
    assert out[1].kind == "section"
    assert out[1].category == SectionCategory.INTRODUCTION


def test_only_levels_two_and_three_open_sections():
    nodes = [_h(1, "Titre"), _h(2, "Exemple"), _h(4, "Détail"), _p("x")]
    out = sectionize(nodes)
    assert [n.kind for n in out] == ["heading", "section"]
    assert len(out[1].children) == 3


def test_output_is_flat_and_conserves_nodes():
    nodes = [_p("0"), _h(2, "Définition"), _p("1"), _h(3, "Propriété"), _p("2"), _p("3")]
    before = count_nodes(nodes)
    out = sectionize(nodes)
    assert count_nodes(out, skip_sections=True) == before
    for sec in out:
        if sec.kind == "section":
            assert all(child.kind != "section" for child in sec.children)


def test_second_pass_is_noop():
    nodes = [_h(2, "Résumé"), _p("x")]
    once = sectionize(nodes)
    assert sectionize(once) == once
