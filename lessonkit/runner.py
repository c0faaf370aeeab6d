from __future__ import annotations

import argparse
import json
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Optional

from .capture.driver import CaptureRequest, capture_html, capture_pdf
from .config import Settings, load_settings
from .exceptions import LessonKitError
from .generation import LessonGenerator, iter_strings, map_strings
from .render.pipeline import render_document, render_page
from .render.validator import sanitize, validate

_URL_PREFIXES = ("http://", "https://", "file://")


def load_document(path: Path):
    """A .json file is a lesson/exercise record; anything else is authored text."""
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return json.loads(text)
    return text


def _doc_text(path: Path, sanitize_first: bool = False) -> str:
    """Text scanned by `validate`; a record contributes its string fields, as at generation."""
    doc = load_document(path)
    if isinstance(doc, dict):
        if sanitize_first:
            doc = map_strings(doc, lambda s: sanitize(s).text)
        return "\n\n".join(iter_strings(doc))
    if sanitize_first:
        return sanitize(doc).text
    return doc


def cmd_render(args, settings: Settings) -> int:
    src = Path(args.input).expanduser().resolve()
    doc = load_document(src)
    if args.fragment:
        out = render_document(doc, settings.uploads_prefix)
    else:
        out = render_page(doc, title=args.title or src.stem, settings=settings)
    if args.output:
        dst = Path(args.output).expanduser().resolve()
        dst.parent.mkdir(parents=True, exist_ok=True)
        dst.write_text(out, encoding="utf-8")
        print(f"[OK] {src.name} -> {dst}")
    else:
        print(out)
    return 0


def cmd_validate(args, settings: Settings) -> int:
    text = _doc_text(Path(args.input).expanduser(), args.sanitize_first)
    report = validate(
        text,
        min_sentence_length=settings.min_sentence_length,
        malformed_math_threshold=settings.malformed_math_threshold,
    )
    print(report.model_dump_json(indent=2))
    return 1 if report.should_reject else 0


def cmd_sanitize(args, settings: Settings) -> int:
    src = Path(args.input).expanduser()
    result = sanitize(src.read_text(encoding="utf-8"))
    if args.output:
        Path(args.output).expanduser().write_text(result.text, encoding="utf-8")
    else:
        print(result.text)
    print(f"[INFO] modified={result.was_modified}")
    return 0


def capture_one(target: str, out_dir: Path, args, settings: Settings) -> tuple[Path, Optional[str]]:
    """One target, one browser session. Returns (pdf path, error or None)."""
    if target.startswith(_URL_PREFIXES):
        name = target.rstrip("/").rsplit("/", 1)[-1] or "page"
        stem = Path(name).stem or "page"
    else:
        stem = Path(target).stem
    dst = out_dir / f"{stem}.pdf"
    try:
        if target.startswith(_URL_PREFIXES):
            request = CaptureRequest(target=target, page_size=args.page_size, print_background=not args.no_background)
            result = capture_pdf(request, settings=settings)
        else:
            src = Path(target).expanduser().resolve()
            if src.suffix.lower() in (".html", ".htm"):
                page = src.read_text(encoding="utf-8")
            else:
                page = render_page(load_document(src), title=src.stem, settings=settings)
            result = capture_html(
                page,
                page_size=args.page_size,
                print_background=not args.no_background,
                settings=settings,
            )
        dst.write_bytes(result.pdf)
        return dst, None
    except (LessonKitError, OSError, ValueError) as e:
        return dst, str(e)


def cmd_pdf(args, settings: Settings) -> int:
    out_dir = Path(args.output_dir).expanduser().resolve()
    out_dir.mkdir(parents=True, exist_ok=True)
    targets = list(args.inputs)

    started = time.time()
    failures: list[tuple[str, str]] = []
    workers = max(1, min(int(args.workers), len(targets)))
    with ThreadPoolExecutor(max_workers=workers) as ex:
        fut_map = {ex.submit(capture_one, t, out_dir, args, settings): t for t in targets}
        for fut in as_completed(fut_map):
            t = fut_map[fut]
            dst, err = fut.result()
            if err:
                failures.append((t, err))
                print(f"[FAILED] {t}: {err}")
            else:
                print(f"[OK] {t} -> {dst}")

    print(f"Done in {time.time() - started:.2f}s")
    if failures:
        print("Failures:")
        for t, err in failures:
            print(f"- {t}: {err}")
        return 1
    return 0


def cmd_generate(args, settings: Settings) -> int:
    gen = LessonGenerator(settings)
    if args.exercise:
        record = gen.generate_exercise(args.topic, level=args.level)
    else:
        record = gen.generate_lesson(args.topic, level=args.level)
    out = record.model_dump_json(indent=2, by_alias=True)
    if args.output:
        Path(args.output).expanduser().write_text(out, encoding="utf-8")
        print(f"[OK] {args.topic} -> {args.output}")
    else:
        print(out)
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="lessonkit", description="Render educational documents to HTML and print-ready PDF.")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("render", help="Render a text or JSON document to HTML.")
    p.add_argument("input", help="Markdown/LaTeX text file or lesson/exercise .json")
    p.add_argument("--output", "-o", help="Output .html (default: stdout)")
    p.add_argument("--title", default="", help="Page title (default: input file name)")
    p.add_argument("--fragment", action="store_true", help="Emit the content fragment only, no page shell.")
    p.set_defaults(func=cmd_render)

    p = sub.add_parser("validate", help="Report integrity findings; exit code 1 when content must be rejected.")
    p.add_argument("input")
    p.add_argument("--sanitize-first", action="store_true", help="Validate the sanitized text.")
    p.set_defaults(func=cmd_validate)

    p = sub.add_parser("sanitize", help="Apply best-effort repairs.")
    p.add_argument("input")
    p.add_argument("--output", "-o", help="Output file (default: stdout)")
    p.set_defaults(func=cmd_sanitize)

    p = sub.add_parser("pdf", help="Capture URLs or documents to PDF through a headless browser.")
    p.add_argument("inputs", nargs="+", help="URL, .html page, text or .json document")
    p.add_argument("--output-dir", "-o", default="output", help="Directory for the PDFs (default: output)")
    p.add_argument("--page-size", default="A4", help="A3, A4, A5, LETTER or LEGAL")
    p.add_argument("--no-background", action="store_true", help="Do not print background colors.")
    p.add_argument("--workers", type=int, default=2, help="Concurrent browser sessions.")
    p.set_defaults(func=cmd_pdf)

    p = sub.add_parser("generate", help="Ask the generator for a checked lesson or exercise record.")
    p.add_argument("topic")
    p.add_argument("--exercise", action="store_true", help="Generate an exam exercise instead of a lesson.")
    p.add_argument("--level", default="", help="Target level, passed to the generator.")
    p.add_argument("--output", "-o", help="Output .json (default: stdout)")
    p.set_defaults(func=cmd_generate)
    return ap


def main(argv: Optional[list[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    settings = load_settings()
    try:
        code = args.func(args, settings)
    except LessonKitError as e:
        print(f"[ERROR] {e}")
        code = 1
    raise SystemExit(code)


if __name__ == "__main__":
    main()
