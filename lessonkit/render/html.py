from __future__ import annotations

import html
import re
import unicodedata

from .models import plain_text


def _attr(value: str) -> str:
    return html.escape(value or "", quote=True)


def _slugify(text: str) -> str:
    s = unicodedata.normalize("NFKD", text or "")
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    s = re.sub(r"[^\w\s-]", "", s.lower())
    s = re.sub(r"[\s_-]+", "-", s).strip("-")
    return s or "section"


def image_style(node) -> str:
    styles: list[str] = []
    if node.width:
        styles.append(f"width: {node.width}")
    if node.height:
        styles.append(f"height: {node.height}")
    styles.append(f"max-width: {node.max_width}")
    if node.keep_aspect:
        styles.append("object-fit: contain" if node.height else "height: auto")
    return "; ".join(styles)


class HtmlRenderer:
    """Tree -> HTML. One instance per document (heading ids are de-duplicated per document)."""

    def __init__(self) -> None:
        self._used_ids: dict[str, int] = {}

    def _heading_id(self, text: str) -> str:
        base = _slugify(text)
        n = self._used_ids.get(base, 0)
        self._used_ids[base] = n + 1
        return base if n == 0 else f"{base}-{n}"

    def render_children(self, nodes) -> str:
        return "".join(self.render(n) for n in nodes)

    def render(self, node) -> str:
        kind = getattr(node, "kind", None)
        method = getattr(self, f"_render_{kind}", None)
        if method is None:
            return ""
        return method(node)

    def _render_document(self, node) -> str:
        return self.render_children(node.children)

    def _render_section(self, node) -> str:
        cat = node.category.value
        return (
            f'<section class="lesson-box box-{cat}" data-category="{cat}">'
            f"{self.render_children(node.children)}</section>\n"
        )

    def _render_heading(self, node) -> str:
        lvl = min(6, max(1, int(node.level)))
        hid = self._heading_id(plain_text(node))
        return f'<h{lvl} id="{hid}">{self.render_children(node.children)}</h{lvl}>\n'

    def _render_paragraph(self, node) -> str:
        return f"<p>{self.render_children(node.children)}</p>\n"

    def _render_list(self, node) -> str:
        items = "".join(self.render(it) for it in node.items)
        if node.ordered:
            start = f' start="{node.start}"' if node.start != 1 else ""
            return f"<ol{start}>\n{items}</ol>\n"
        return f"<ul>\n{items}</ul>\n"

    def _render_list_item(self, node) -> str:
        return f"<li>{self.render_children(node.children)}</li>\n"

    def _render_blockquote(self, node) -> str:
        return f"<blockquote>\n{self.render_children(node.children)}</blockquote>\n"

    def _render_table(self, node) -> str:
        rows = "".join(self.render(r) for r in node.rows)
        return f"<table>\n<tbody>\n{rows}</tbody>\n</table>\n"

    def _render_table_row(self, node) -> str:
        return "<tr>" + "".join(self.render(c) for c in node.cells) + "</tr>\n"

    def _render_table_cell(self, node) -> str:
        tag = "th" if node.header else "td"
        style = f' style="text-align: {node.align}"' if node.align else ""
        return f"<{tag}{style}>{self.render_children(node.children)}</{tag}>"

    def _render_code(self, node) -> str:
        body = html.escape(node.value)
        if not node.block:
            return f"<code>{body}</code>"
        lang = f' class="language-{_attr(node.info.split()[0])}"' if node.info else ""
        return f"<pre><code{lang}>{body}</code></pre>\n"

    def _render_rule(self, node) -> str:
        return "<hr />\n"

    def _render_html(self, node) -> str:
        return node.value

    def _render_text(self, node) -> str:
        return html.escape(node.value, quote=False)

    def _render_line_break(self, node) -> str:
        return "<br />\n"

    def _render_emphasis(self, node) -> str:
        tag = "strong" if node.style == "strong" else "em"
        return f"<{tag}>{self.render_children(node.children)}</{tag}>"

    def _render_link(self, node) -> str:
        return f'<a href="{_attr(node.href)}">{self.render_children(node.children)}</a>'

    def _render_image(self, node) -> str:
        img = (
            f'<img src="{_attr(node.path)}" alt="{_attr(node.alt)}" '
            f'class="latex-image" style="{_attr(image_style(node))}" />'
        )
        return f'<span class="image-wrapper">{img}</span>'

    def _render_math_inline(self, node) -> str:
        if node.mathml:
            return f'<span class="math-inline">{node.mathml}</span>'
        # Left as TeX so a client-side engine can still pick it up.
        return f'<span class="math-inline math-error">\\({html.escape(node.source)}\\)</span>'

    def _render_math_display(self, node) -> str:
        if node.mathml:
            return f'<span class="math-display">{node.mathml}</span>'
        return f'<span class="math-display math-error">\\[{html.escape(node.source)}\\]</span>'


def to_html(node) -> str:
    return HtmlRenderer().render(node)
