import hashlib
import io

import pytest
from rich.console import Console

from chunky.errors import ConfigurationError
from chunky.models.chunk import Chunk
from chunky.orchestration.files import expand_globs
from chunky.orchestration.output import (
    chunk_filename,
    group_chunks_by_file,
    print_chunk_report,
    sanitize_filename,
    write_chunks,
)


def _touch(path, text="x"):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def _chunk(path, index=1, tokens=10, text="body"):
    return Chunk(file_path=path, file_title="t", chunk_index=index, text=text, tokens=tokens)


def test_expand_globs_with_exclusions(tmp_path):
    for name in ("a.md", "sub/b.md", "sub/c.txt", "drafts/d.md"):
        _touch(tmp_path / name)
    (tmp_path / "folder.md").mkdir()

    files = expand_globs(tmp_path, ["**/*.md", "!drafts/**"])

    assert files == ["a.md", "sub/b.md"]


def test_expand_globs_deduplicates_and_sorts(tmp_path):
    _touch(tmp_path / "z.md")
    _touch(tmp_path / "a.md")

    assert expand_globs(tmp_path, ["*.md", "a.md"]) == ["a.md", "z.md"]
    assert expand_globs(tmp_path, []) == []
    assert expand_globs(tmp_path, ["!a.md"]) == []


def test_expand_globs_rejects_files_outside_root(tmp_path):
    project = tmp_path / "project"
    project.mkdir()
    _touch(tmp_path / "other" / "x.md")

    with pytest.raises(ConfigurationError):
        expand_globs(project, ["../other/*.md"])


def test_sanitize_filename():
    assert sanitize_filename("--My File (v2)..draft--") == "My_File_v2_draft"
    assert sanitize_filename("plain") == "plain"


def test_chunk_filename_hashes_directory():
    digest = hashlib.sha256(b"docs/guides").hexdigest()[:8]

    assert chunk_filename(_chunk("docs/guides/My File.md", index=3)) == f"{digest}_My_File.003.md"

    root_digest = hashlib.sha256(b".").hexdigest()[:8]
    assert chunk_filename(_chunk("readme.md", index=12)) == f"{root_digest}_readme.012.md"


def test_same_name_in_different_directories_does_not_collide():
    assert chunk_filename(_chunk("a/index.md")) != chunk_filename(_chunk("b/index.md"))


def test_group_chunks_by_file_keeps_first_seen_order():
    chunks = [_chunk("b.md"), _chunk("a.md"), _chunk("b.md", index=2)]

    order, grouped = group_chunks_by_file(chunks)

    assert order == ["b.md", "a.md"]
    assert [chunk.chunk_index for chunk in grouped["b.md"]] == [1, 2]


def test_print_chunk_report_marks_jumbo_chunks():
    buffer = io.StringIO()
    console = Console(file=buffer, no_color=True, width=200)

    print_chunk_report([_chunk("a.md", tokens=50), _chunk("a.md", index=2, tokens=150)], 100, console)

    output = buffer.getvalue()
    assert "a.md" in output
    assert "✓ (50)" in output
    assert "! (150)" in output


def test_write_chunks(tmp_path):
    chunks = [_chunk("docs/a.md", text="one"), _chunk("docs/a.md", index=2, text="two")]

    written = write_chunks(chunks, tmp_path / "out")

    assert [path.read_text(encoding="utf-8") for path in written] == ["one", "two"]
    assert [path.name for path in written] == [chunk_filename(chunk) for chunk in chunks]
