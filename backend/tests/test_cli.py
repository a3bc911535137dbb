from __future__ import annotations

import json

from slidesmith.cli import main


def test_templates_command_lists_default_set(capsys) -> None:
    assert main(["templates"]) == 0
    out = capsys.readouterr().out

    assert "slide:title@1.0.0 layout=title extends base:common" in out
    assert "base:common@1.0.0 layout=default" in out


def test_generate_prints_slides(tmp_path, capsys) -> None:
    source = tmp_path / "talk.md"
    source.write_text("# My Talk\n\n- one\n- two", encoding="utf-8")

    assert main(["generate", str(source)]) == 0
    out = capsys.readouterr().out
    assert "# My Talk" in out
    assert "- one\n- two" in out


def test_generate_json_and_out_file(tmp_path, capsys) -> None:
    source = tmp_path / "talk.md"
    source.write_text("# My Talk\n\nSome body text.", encoding="utf-8")
    target = tmp_path / "deck.json"

    assert main(["generate", str(source), "--json", "--quality", "--out", str(target)]) == 0
    payload = json.loads(target.read_text(encoding="utf-8"))
    assert len(payload["slides"]) == 2
    assert payload["layout_decisions"][0]["type"] == "title"
    assert payload["quality"] is not None
    assert "Wrote 2 slides" in capsys.readouterr().out


def test_generate_reports_missing_input(tmp_path, capsys) -> None:
    assert main(["generate", str(tmp_path / "nope.md")]) == 1
    assert "Cannot read input" in capsys.readouterr().err


def test_generate_rejects_unsafe_output_name(tmp_path, capsys) -> None:
    source = tmp_path / "talk.md"
    source.write_text("hello", encoding="utf-8")

    assert main(["generate", str(source), "--out", str(tmp_path / "bad|name.md")]) == 1
    assert "Invalid output file" in capsys.readouterr().err
