from lessonkit.render.images import (
    build_image,
    expand_image_macros,
    find_image_macros,
    resolve_dimension,
    resolve_image_path,
    split_text_on_images,
)
from lessonkit.render.models import Document, Image, Paragraph, Text


def test_resolve_dimension_units():
    assert resolve_dimension("0.5\\linewidth") == "50%"
    assert resolve_dimension(".25\\textwidth") == "25%"
    assert resolve_dimension("\\linewidth") == "100%"
    assert resolve_dimension("0.125\\columnwidth") == "13%"
    assert resolve_dimension("3cm") == "113px"
    assert resolve_dimension("300px") == "300px"
    assert resolve_dimension("40%") == "40%"
    assert resolve_dimension("300") == "300px"


def test_resolve_dimension_unknown_unit_passes_through():
    assert resolve_dimension("2in") == "2in"
    assert resolve_dimension(None) is None
    assert resolve_dimension("  ") is None


def test_figure_macro_path_first():
    specs = find_image_macros(r"\figure{img.png}{width=0.5\linewidth}")
    assert len(specs) == 1
    assert specs[0].path == "img.png"
    assert specs[0].width_spec == "0.5\\linewidth"
    assert specs[0].height_spec is None


def test_includegraphics_options_optional():
    specs = find_image_macros(r"a \includegraphics{a.png} b \includegraphics[height=2cm, width=3cm]{b.png}")
    assert [s.path for s in specs] == ["a.png", "b.png"]
    assert specs[1].width_spec == "3cm"
    assert specs[1].height_spec == "2cm"


def test_build_image_from_figure():
    spec = find_image_macros(r"\figure{img.png}{width=0.5\linewidth}")[0]
    img = build_image(spec)
    assert img.path == "/uploads/img.png"
    assert img.width == "50%"
    assert img.height is None
    assert img.max_width == "100%"
    assert img.keep_aspect is True
    assert img.alt == "img"


def test_resolve_image_path():
    assert resolve_image_path("./figs/a.png") == "/uploads/figs/a.png"
    assert resolve_image_path("a.png", "/media") == "/media/a.png"
    assert resolve_image_path("https://cdn.example.org/a.png") == "https://cdn.example.org/a.png"
    assert resolve_image_path("/static/a.png") == "/static/a.png"


def test_split_text_on_images_keeps_surrounding_text():
    parts = split_text_on_images(r"avant \includegraphics[width=3cm]{fig.jpg} après")
    assert [p.kind for p in parts] == ["text", "image", "text"]
    assert parts[0].value == "avant "
    assert parts[1].width == "113px"
    assert parts[2].value == " après"


def test_expand_image_macros_in_tree():
    doc = Document(children=[
        Paragraph(children=[Text(value=r"Voir \figure{graphe.png}{width=0.8\linewidth} ci-dessus.")]),
    ])
    expand_image_macros(doc)
    para = doc.children[0]
    assert [c.kind for c in para.children] == ["text", "image", "text"]
    img = para.children[1]
    assert isinstance(img, Image)
    assert img.path == "/uploads/graphe.png"
    assert img.width == "80%"


def test_text_without_macros_is_untouched():
    doc = Document(children=[Paragraph(children=[Text(value="rien")])])
    expand_image_macros(doc)
    assert doc.children[0].children == [Text(value="rien")]


def test_overlapping_macros_keep_the_earlier_one():
    specs = find_image_macros("\\includegraphics{\\figure{a.png}{width=1cm}")
    assert len(specs) == 1
    assert specs[0].start == 0
