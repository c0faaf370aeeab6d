from __future__ import annotations

import re
from typing import Optional

from markdown_it import MarkdownIt
from mdit_py_plugins.dollarmath import dollarmath_plugin

from .models import (
    Blockquote,
    Code,
    Document,
    Emphasis,
    Heading,
    Html,
    Image,
    LineBreak,
    Link,
    ListBlock,
    ListItem,
    MathDisplay,
    MathInline,
    Paragraph,
    Rule,
    Table,
    TableCell,
    TableRow,
    Text,
)

_ALIGN_RE = re.compile(r"text-align\s*:\s*(left|right|center)", re.IGNORECASE)


def _build_markdown_parser() -> MarkdownIt:
    # Soft line breaks render as <br/>, raw HTML (details/summary, <u>) allowed.
    md = MarkdownIt("commonmark", {"html": True, "breaks": True})
    md.enable("table")
    # $$..$$ written inline inside a paragraph is still display math.
    md.use(dollarmath_plugin, double_inline=True)
    return md


_MD_PARSER: MarkdownIt = _build_markdown_parser()


def _inline_nodes(tokens) -> list:
    root: list = []
    stack: list[list] = [root]
    for tok in tokens or []:
        t = tok.type
        if t == "text":
            if tok.content:
                stack[-1].append(Text(value=tok.content))
        elif t in ("softbreak", "hardbreak"):
            stack[-1].append(LineBreak())
        elif t == "code_inline":
            stack[-1].append(Code(value=tok.content, block=False))
        elif t == "html_inline":
            stack[-1].append(Html(value=tok.content))
        elif t == "math_inline":
            stack[-1].append(MathInline(source=tok.content))
        elif t == "math_inline_double":
            stack[-1].append(MathDisplay(source=tok.content))
        elif t == "image":
            alt = "".join(c.content for c in (tok.children or []))
            stack[-1].append(Image(path=str(tok.attrGet("src") or ""), alt=alt))
        elif t in ("em_open", "strong_open"):
            node = Emphasis(style="strong" if t == "strong_open" else "em")
            stack[-1].append(node)
            stack.append(node.children)
        elif t == "link_open":
            node = Link(href=str(tok.attrGet("href") or ""))
            stack[-1].append(node)
            stack.append(node.children)
        elif t.endswith("_open"):
            # Unknown inline container: keep its content in place.
            stack.append(stack[-1])
        elif t.endswith("_close"):
            if len(stack) > 1:
                stack.pop()
        elif tok.content:
            stack[-1].append(Text(value=tok.content))
    return root


def _cell_align(tok) -> Optional[str]:
    style = str(tok.attrGet("style") or "")
    m = _ALIGN_RE.search(style)
    return m.group(1).lower() if m else None


def parse_markdown(text: str) -> Document:
    """Parse Markdown (with $ / $$ math) into a Document tree."""
    doc = Document()
    stack: list[list] = [doc.children]
    for tok in _MD_PARSER.parse(text or ""):
        t = tok.type
        if t == "paragraph_open":
            if tok.hidden:
                # Tight list item: inline content goes straight into the item.
                stack.append(stack[-1])
            else:
                node = Paragraph()
                stack[-1].append(node)
                stack.append(node.children)
        elif t == "heading_open":
            node = Heading(level=int(tok.tag[1:]))
            stack[-1].append(node)
            stack.append(node.children)
        elif t in ("bullet_list_open", "ordered_list_open"):
            ordered = t == "ordered_list_open"
            start = int(tok.attrGet("start") or 1) if ordered else 1
            node = ListBlock(ordered=ordered, start=start)
            stack[-1].append(node)
            stack.append(node.items)
        elif t == "list_item_open":
            node = ListItem()
            stack[-1].append(node)
            stack.append(node.children)
        elif t == "blockquote_open":
            node = Blockquote()
            stack[-1].append(node)
            stack.append(node.children)
        elif t == "table_open":
            node = Table()
            stack[-1].append(node)
            stack.append(node.rows)
        elif t == "tr_open":
            node = TableRow()
            stack[-1].append(node)
            stack.append(node.cells)
        elif t in ("th_open", "td_open"):
            node = TableCell(header=t == "th_open", align=_cell_align(tok))
            stack[-1].append(node)
            stack.append(node.children)
        elif t == "inline":
            stack[-1].extend(_inline_nodes(tok.children))
        elif t in ("fence", "code_block"):
            stack[-1].append(Code(value=tok.content, block=True, info=(tok.info or "").strip()))
        elif t == "hr":
            stack[-1].append(Rule())
        elif t == "html_block":
            stack[-1].append(Html(value=tok.content, block=True))
        elif t in ("math_block", "math_block_label"):
            stack[-1].append(MathDisplay(source=tok.content.strip()))
        elif t.endswith("_open"):
            # thead/tbody and other wrappers carry no node of their own.
            stack.append(stack[-1])
        elif t.endswith("_close"):
            if len(stack) > 1:
                stack.pop()
    return doc
