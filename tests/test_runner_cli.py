import io

import pytest
from rich.console import Console

from chunky.cli import main, parse_args
from chunky.errors import StrictModeError
from chunky.models.configs import ChunkyOptions
from chunky.orchestration.config_loader import CONFIG_FILE_NAME
from chunky.orchestration.output import chunk_filename
from chunky.orchestration.runner import document_title, run_chunky

DOC = "---\ntitle: Guide\n---\n# A\nalpha\n## B\nbeta\n"


def _console():
    return Console(file=io.StringIO(), no_color=True, width=200)


def _project(tmp_path, files):
    for name, text in files.items():
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    return tmp_path


def test_run_chunky_writes_chunk_files(tmp_path):
    project = _project(tmp_path, {"docs/guide.md": DOC, "docs/skip.txt": "ignored"})
    options = ChunkyOptions(tokenizer="word", budget=100, out_dir="out", files=["docs/*.md"])

    result = run_chunky(options, project, console=_console())

    assert result.ok
    assert result.files == ["docs/guide.md"]
    assert len(result.chunks) == 1
    written = result.written[0]
    assert written.parent == project.resolve() / "out"
    assert written.name == chunk_filename(result.chunks[0])
    text = written.read_text(encoding="utf-8")
    assert text.startswith("---\nfile_path: docs/guide.md\ntitle: Guide\n---\n")
    assert "<!-- path: guide / A / B -->" in text


def test_run_chunky_dry_run_writes_nothing(tmp_path):
    project = _project(tmp_path, {"a.md": DOC})
    options = ChunkyOptions(tokenizer="word", out_dir="out", dry_run=True, files=["*.md"])

    result = run_chunky(options, project, console=_console())

    assert len(result.chunks) == 1
    assert result.written == []
    assert not (project / "out").exists()


def test_run_chunky_continues_past_failing_files(tmp_path):
    project = _project(tmp_path, {"a.md": "", "b.md": DOC})
    options = ChunkyOptions(tokenizer="word", out_dir="out", files=["*.md"])
    console = _console()

    result = run_chunky(options, project, console=console)

    assert [path for path, _ in result.failures] == ["a.md"]
    assert [chunk.file_path for chunk in result.chunks] == ["b.md"]
    assert len(result.written) == 1
    assert "a.md" in console.file.getvalue()


def test_run_chunky_strict_mode_fails_after_reporting(tmp_path):
    project = _project(tmp_path, {"big.md": "word " * 200, "small.md": DOC})
    options = ChunkyOptions(tokenizer="word", budget=100, strict=True, out_dir="out", files=["*.md"])
    console = _console()

    with pytest.raises(StrictModeError) as excinfo:
        run_chunky(options, project, console=console)

    assert [chunk.file_path for chunk in excinfo.value.jumbo_chunks] == ["big.md"]
    assert "small.md" in console.file.getvalue()
    assert not (project / "out").exists()


def test_run_chunky_reports_jumbo_without_strict(tmp_path):
    project = _project(tmp_path, {"big.md": "word " * 200})
    options = ChunkyOptions(tokenizer="word", budget=100, out_dir="out", files=["*.md"])

    result = run_chunky(options, project, console=_console())

    assert len(result.jumbo_chunks) == 1
    assert len(result.written) == 1


def test_run_chunky_validates_options(tmp_path):
    with pytest.raises(ValueError):
        run_chunky(ChunkyOptions(budget=50, tokenizer="word"), tmp_path, console=_console())


def test_document_title_strips_extension():
    assert document_title("docs/User Guide.md") == "User Guide"
    assert document_title("README") == "README"


def test_parse_args_header_fields():
    args = parse_args(["run", "-H", "title!:Title", "--header", "tags", "-b", "500", "docs/*.md"])

    assert args.command == "run"
    assert [(field.path, field.label, field.required) for field in args.headers] == [
        ("title", "Title", True),
        ("tags", "tags", False),
    ]
    assert args.budget == 500
    assert args.files == ["docs/*.md"]


def test_parse_args_rejects_bad_header_spec():
    with pytest.raises(SystemExit):
        parse_args(["run", "-H", ":Label"])


def test_cli_init_then_run(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("CHUNKY_TOKENIZER", raising=False)
    _project(tmp_path, {"docs/guide.md": DOC})

    assert main(["init", "-t", "word", "-o", "chunks", "-H", "title!:Title", "docs/*.md"]) == 0
    config_text = (tmp_path / CONFIG_FILE_NAME).read_text(encoding="utf-8")
    assert config_text.startswith("# Chunky configuration file")

    assert main(["init"]) == 1
    assert main(["init", "--force", "-t", "word", "-o", "chunks", "-H", "title!:Title", "docs/*.md"]) == 0

    assert main(["run"]) == 0
    outputs = sorted((tmp_path / "chunks").iterdir())
    assert len(outputs) == 1
    assert outputs[0].read_text(encoding="utf-8").startswith("Title: Guide\n\n")


def test_cli_run_exit_code_reflects_failures(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    _project(tmp_path, {"empty.md": ""})

    assert main(["run", "-t", "word", "--dry-run", "*.md"]) == 1


def test_cli_rejects_invalid_budget(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    assert main(["init", "-b", "10"]) == 1
    assert not (tmp_path / CONFIG_FILE_NAME).exists()
