from .images import expand_image_macros
from .macros import normalize_macros
from .math_delimiters import normalize_math_delimiters
from .pipeline import build_tree, prepare_text, render_document, render_page
from .projection import project_document
from .sectionize import sectionize
from .validator import sanitize, validate

__all__ = [
    "build_tree",
    "expand_image_macros",
    "normalize_macros",
    "normalize_math_delimiters",
    "prepare_text",
    "project_document",
    "render_document",
    "render_page",
    "sanitize",
    "sectionize",
    "validate",
]
