from __future__ import annotations

from typing import Optional

from latex2mathml.converter import convert as latex2mathml_convert

from .models import iter_nodes


def typeset_math(source: str, *, display: bool) -> Optional[str]:
    """LaTeX -> MathML, or None when the engine cannot handle the source."""
    if not source or not source.strip():
        return None
    try:
        return latex2mathml_convert(source.strip(), display="block" if display else "inline")
    except Exception:
        # Broken math renders as its source rather than aborting the document.
        return None


def typeset_tree(node):
    for sub in iter_nodes(node):
        kind = getattr(sub, "kind", None)
        if kind == "math_inline":
            sub.mathml = typeset_math(sub.source, display=False)
        elif kind == "math_display":
            sub.mathml = typeset_math(sub.source, display=True)
    return node
