from lessonkit.render.text_utils import (
    brace_balance,
    count_unescaped,
    join_segments,
    math_spans,
    normalize_newlines,
    protect_math,
    restore_math,
    split_math_segments,
)


def test_split_math_segments_alternates_and_round_trips():
    src = "a $x$ b $$y$$ c"
    segs = split_math_segments(src)
    assert [s.value for s in segs] == ["a ", "$x$", " b ", "$$y$$", " c"]
    assert [s.is_math for s in segs] == [False, True, False, True, False]
    assert join_segments(segs) == src


def test_escaped_dollar_is_not_a_delimiter():
    assert math_spans(r"prix \$5 et $x$") == ["$x$"]


def test_inline_math_does_not_cross_blank_line():
    # A stray "$5" must not swallow the next paragraph.
    assert math_spans("coût $5\n\nautre $x$") == ["$x$"]


def test_display_math_may_span_lines():
    assert math_spans("avant\n$$\na = b\n$$\naprès") == ["$$\na = b\n$$"]


def test_protect_restore_math():
    src = r"Soit $\textbf{x}$ et $$\frac{1}{2}$$ fin"
    protected, store = protect_math(src)
    assert "$" not in protected
    assert store == [r"$\textbf{x}$", r"$$\frac{1}{2}$$"]
    assert restore_math(protected, store) == src


def test_normalize_newlines_keeps_latex_commands():
    src = r"Ligne 1\nLigne 2 $a \neq b$ et $\nabla f$"
    out = normalize_newlines(src)
    assert out == "Ligne 1\nLigne 2 $a \\neq b$ et $\\nabla f$"


def test_normalize_newlines_crlf_and_collapse():
    assert normalize_newlines("a\r\nb\r\n\r\n\r\n\r\nc") == "a\nb\n\nc"
    assert normalize_newlines("") == ""


def test_brace_balance_ignores_escaped_braces():
    assert brace_balance(r"\frac{1}{2") == 1
    assert brace_balance(r"\{ a \}") == 0
    assert count_unescaped(r"a\\{b", "{") == 1
