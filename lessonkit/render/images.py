from __future__ import annotations

import math
import re
from typing import Optional, Union

from .models import Image, ImageMacroSpec, Text, child_lists

# \includegraphics[options]{path}  (options first, options optional)
_INCLUDEGRAPHICS_RE = re.compile(r"\\includegraphics(?:\[([^\]]*)\])?\{([^}]+)\}")
# \figure{path}{options}  (path first)
_FIGURE_RE = re.compile(r"\\figure\{([^}]+)\}\{([^}]*)\}")

_NUMBER = r"([0-9]*\.?[0-9]+)"
_RELATIVE_RE = re.compile(r"^([0-9]*\.?[0-9]*)\s*\\(?:linewidth|textwidth|columnwidth)$")
_CM_RE = re.compile(rf"^{_NUMBER}\s*cm$")
_PASSTHROUGH_RE = re.compile(rf"^{_NUMBER}\s*(?:px|%)$")
_BARE_RE = re.compile(rf"^{_NUMBER}$")

PX_PER_CM = 37.8


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def find_image_macros(text: str) -> list[ImageMacroSpec]:
    """All image macros of both syntaxes, by position, overlaps dropped in favor of the earlier one."""
    found: list[ImageMacroSpec] = []
    for m in _INCLUDEGRAPHICS_RE.finditer(text):
        opts = parse_image_options(m.group(1) or "")
        found.append(ImageMacroSpec(
            path=m.group(2).strip(),
            width_spec=opts.get("width"),
            height_spec=opts.get("height"),
            start=m.start(),
            end=m.end(),
        ))
    for m in _FIGURE_RE.finditer(text):
        opts = parse_image_options(m.group(2) or "")
        found.append(ImageMacroSpec(
            path=m.group(1).strip(),
            width_spec=opts.get("width"),
            height_spec=opts.get("height"),
            start=m.start(),
            end=m.end(),
        ))
    found.sort(key=lambda s: (s.start, -s.end))

    out: list[ImageMacroSpec] = []
    last_end = 0
    for spec in found:
        if spec.start < last_end:
            continue
        out.append(spec)
        last_end = spec.end
    return out


def parse_image_options(options: str) -> dict[str, str]:
    out: dict[str, str] = {}
    for part in (options or "").split(","):
        if "=" not in part:
            continue
        key, value = part.split("=", 1)
        key = key.strip().lower()
        value = value.strip()
        if key in ("width", "height") and value:
            out[key] = value
    return out


def resolve_dimension(spec: Optional[str]) -> Optional[str]:
    """
    0.5\\linewidth -> 50%, 3cm -> 113px, 300px / 40% unchanged, 300 -> 300px.
    Anything else is passed through as written.
    """
    if spec is None:
        return None
    s = spec.strip()
    if not s:
        return None
    m = _RELATIVE_RE.match(s)
    if m:
        factor = float(m.group(1)) if m.group(1) and m.group(1) != "." else 1.0
        return f"{_round_half_up(factor * 100)}%"
    m = _CM_RE.match(s)
    if m:
        return f"{_round_half_up(float(m.group(1)) * PX_PER_CM)}px"
    if _PASSTHROUGH_RE.match(s):
        return s.replace(" ", "")
    m = _BARE_RE.match(s)
    if m:
        return f"{m.group(1)}px"
    return s


def resolve_image_path(path: str, uploads_prefix: str = "/uploads/") -> str:
    p = re.sub(r"^\./", "", path.strip())
    if p.startswith(("http://", "https://", "data:", "/")):
        return p
    return uploads_prefix.rstrip("/") + "/" + p


def build_image(spec: ImageMacroSpec, uploads_prefix: str = "/uploads/") -> Image:
    src = resolve_image_path(spec.path, uploads_prefix)
    alt = src.rsplit("/", 1)[-1].split(".", 1)[0] or "Embedded image"
    return Image(
        path=src,
        width=resolve_dimension(spec.width_spec),
        height=resolve_dimension(spec.height_spec),
        alt=alt,
    )


def split_text_on_images(text: str, uploads_prefix: str = "/uploads/") -> list[Union[Text, Image]]:
    specs = find_image_macros(text)
    if not specs:
        return [Text(value=text)]
    parts: list[Union[Text, Image]] = []
    last = 0
    for spec in specs:
        if spec.start > last:
            parts.append(Text(value=text[last:spec.start]))
        parts.append(build_image(spec, uploads_prefix))
        last = spec.end
    if last < len(text):
        parts.append(Text(value=text[last:]))
    return parts


def expand_image_macros(node, uploads_prefix: str = "/uploads/"):
    """Replace every text leaf holding image macros, in place, by text/image fragments."""
    for seq in child_lists(node):
        i = 0
        while i < len(seq):
            child = seq[i]
            if getattr(child, "kind", None) == "text":
                if "\\includegraphics" in child.value or "\\figure" in child.value:
                    parts = split_text_on_images(child.value, uploads_prefix)
                    seq[i:i + 1] = parts
                    i += len(parts)
                    continue
            else:
                expand_image_macros(child, uploads_prefix)
            i += 1
    return node
