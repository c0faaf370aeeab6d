import json

import pytest

from lessonkit.runner import main


def _run(argv):
    with pytest.raises(SystemExit) as exc:
        main(argv)
    return exc.value.code


def test_render_text_file(tmp_path):
    src = tmp_path / "cours.md"
    src.write_text("## Définition\n\n\\textbf{Suite} : $u_n$.", encoding="utf-8")
    out = tmp_path / "cours.html"
    assert _run(["render", str(src), "-o", str(out)]) == 0
    page = out.read_text(encoding="utf-8")
    assert "<title>cours</title>" in page
    assert "box-definition" in page
    assert "<strong>Suite</strong>" in page


def test_render_json_fragment(tmp_path, capsys):
    src = tmp_path / "lecon.json"
    src.write_text(json.dumps({"title": "T", "summary": "Fin."}), encoding="utf-8")
    assert _run(["render", str(src), "--fragment"]) == 0
    out = capsys.readouterr().out
    assert out.startswith('<div class="markdown-content">')
    assert "box-summary" in out


def test_validate_exit_code(tmp_path, capsys):
    bad = tmp_path / "bad.md"
    bad.write_text("Un texte avec SDf dedans.", encoding="utf-8")
    assert _run(["validate", str(bad)]) == 1
    report = json.loads(capsys.readouterr().out)
    assert report["should_reject"] is True
    # Sanitized first, the same text passes.
    assert _run(["validate", str(bad), "--sanitize-first"]) == 0


def test_sanitize_to_file(tmp_path):
    src = tmp_path / "t.md"
    src.write_text("a SDf b {", encoding="utf-8")
    out = tmp_path / "clean.md"
    assert _run(["sanitize", str(src), "-o", str(out)]) == 0
    assert out.read_text(encoding="utf-8") == "a  b {}"


def test_validate_json_scans_field_text(tmp_path, capsys):
    # Truncated command at the end of the last field; serialized JSON would close it with '"}'.
    src = tmp_path / "lecon.json"
    src.write_text(json.dumps({"title": "T", "summary": "Donc \\frac{1"}), encoding="utf-8")
    assert _run(["validate", str(src)]) == 1
    report = json.loads(capsys.readouterr().out)
    assert report["should_reject"] is True


def test_validate_json_sanitizes_each_field(tmp_path, capsys):
    src = tmp_path / "lecon.json"
    src.write_text(json.dumps({"title": "Cours SDf", "summary": "Fin."}), encoding="utf-8")
    assert _run(["validate", str(src)]) == 1
    capsys.readouterr()
    assert _run(["validate", str(src), "--sanitize-first"]) == 0
