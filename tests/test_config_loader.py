import pytest

from chunky.errors import ConfigurationError
from chunky.models.configs import ChunkyOptions, HeaderField
from chunky.orchestration.config_loader import (
    CONFIG_FILE_NAME,
    find_project_root,
    load_config,
    merge_options,
    save_config,
)


def test_find_project_root_walks_up(tmp_path):
    (tmp_path / CONFIG_FILE_NAME).write_text("budget: 500\n", encoding="utf-8")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)

    root, found = find_project_root(nested)

    assert found
    assert root == tmp_path.resolve()


def test_find_project_root_without_config(tmp_path):
    nested = tmp_path / "empty"
    nested.mkdir()

    root, found = find_project_root(nested)

    if not found:
        assert root == nested.resolve()


def test_load_config_reads_yaml(tmp_path):
    (tmp_path / CONFIG_FILE_NAME).write_text(
        "outDir: chunks\n"
        "budget: 500\n"
        "overhead: 0.1\n"
        "strict: true\n"
        "tokenizer: word\n"
        "dryRun: true\n"
        "headers:\n"
        "  - title!:Title\n"
        "  - path: author\n"
        "    label: Author\n"
        "files:\n"
        "  - docs/**/*.md\n",
        encoding="utf-8",
    )

    options = load_config(tmp_path)

    assert options.out_dir == "chunks"
    assert options.budget == 500
    assert options.overhead == pytest.approx(0.1)
    assert options.strict
    assert options.dry_run
    assert options.tokenizer == "word"
    assert options.headers == [
        HeaderField(path="title", label="Title", required=True),
        HeaderField(path="author", label="Author", required=False),
    ]
    assert options.files == ["docs/**/*.md"]


def test_load_config_missing_file_returns_none(tmp_path):
    assert load_config(tmp_path) is None


@pytest.mark.parametrize("text", ["- just\n- a list\n", "budget: [unclosed\n", "budget: lots\n"])
def test_load_config_rejects_invalid_files(tmp_path, text):
    (tmp_path / CONFIG_FILE_NAME).write_text(text, encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_config(tmp_path)


def test_save_config_writes_banner_and_reloads(tmp_path):
    options = ChunkyOptions(
        budget=800,
        tokenizer="char",
        headers=[HeaderField.parse("title!:Title")],
        files=["*.md", "!drafts/*.md"],
    )

    path = save_config(tmp_path, options)
    text = path.read_text(encoding="utf-8")

    assert text.startswith("# Chunky configuration file\n")
    assert "outDir:" in text
    assert "verbose" not in text
    reloaded = load_config(tmp_path)
    assert reloaded.budget == 800
    assert reloaded.headers == options.headers
    assert reloaded.files == ["*.md", "!drafts/*.md"]


def test_merge_options_prefers_non_default_cli_values():
    config = ChunkyOptions(
        out_dir="from-config",
        budget=500,
        overhead=0.2,
        tokenizer="word",
        headers=[HeaderField.parse("title")],
        files=["a.md"],
    )
    cli = ChunkyOptions(budget=2000, strict=True, headers=[HeaderField.parse("author")], files=["b.md"])

    merged = merge_options(config, cli)

    assert merged.out_dir == "from-config"
    assert merged.budget == 2000
    assert merged.overhead == pytest.approx(0.2)
    assert merged.tokenizer == "word"
    assert merged.strict
    assert [field.path for field in merged.headers] == ["title", "author"]
    assert merged.files == ["a.md", "b.md"]


def test_merge_options_without_config_uses_cli():
    cli = ChunkyOptions(out_dir="out", tokenizer="char")

    merged = merge_options(None, cli)

    assert merged.out_dir == "out"
    assert merged.tokenizer == "char"
    assert merged.budget == 1000


def test_validate_for_run():
    ChunkyOptions(budget=100, overhead=0.01).validate_for_run()
    ChunkyOptions(overhead=0.5).validate_for_run()

    for options in (ChunkyOptions(budget=99), ChunkyOptions(overhead=0.001), ChunkyOptions(overhead=0.6)):
        with pytest.raises(ValueError):
            options.validate_for_run()
