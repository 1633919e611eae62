import pytest

from chunky.models.chunk import Chunk
from chunky.models.frontmatter import FrontMatter, serialize_front_matter
from chunky.models.section import Section


def test_section_create_child_tracks_parent_and_order():
    root = Section.root("Doc")
    child_a = root.create_child("A", 1)
    child_b = root.create_child("B", 1)
    grandchild = child_a.create_child("A.1", 3, content="deep")

    assert root.is_root
    assert root.children == [child_a, child_b]
    assert child_a.parent is root
    assert grandchild.parent is child_a
    assert grandchild.content == "deep"
    assert grandchild.title_path() == ["Doc", "A", "A.1"]


def test_section_create_child_rejects_non_deeper_level():
    root = Section.root("Doc")
    child = root.create_child("A", 2)

    with pytest.raises(ValueError):
        child.create_child("B", 2)
    with pytest.raises(ValueError):
        child.create_child("C", 1)


def test_section_content_mutators():
    section = Section(title="S", level=1)

    section.append_content("middle")
    section.prepend_content("start ")
    section.append_content(" end")
    assert section.content == "start middle end"

    section.set_content("replaced")
    assert section.content == "replaced"

    section.reset_content()
    assert section.content == ""


def test_section_render_concatenates_preorder():
    root = Section.root("Doc")
    root.set_content("r;")
    a = root.create_child("A", 1, content="a;")
    a.create_child("A1", 2, content="a1;")
    root.create_child("B", 1, content="b;")

    assert [node.title for node in root.iter_preorder()] == ["Doc", "A", "A1", "B"]
    assert root.render() == "r;a;a1;b;"


def test_front_matter_view_is_a_deep_copy():
    front_matter = FrontMatter.from_mapping({"tags": ["a", "b"], "meta": {"owner": "x"}})
    view = front_matter.view()

    tags = view["tags"]
    tags.append("c")
    view.get("meta")["owner"] = "y"
    front_matter["later"] = True

    assert front_matter["tags"] == ["a", "b"]
    assert front_matter["meta"] == {"owner": "x"}
    assert "later" not in view
    assert sorted(view) == ["meta", "tags"]
    assert view.get("missing", "default") == "default"
    with pytest.raises(TypeError):
        view["tags"] = []  # type: ignore[index]


def test_front_matter_clone_is_independent():
    original = FrontMatter.from_mapping({"nested": {"k": [1]}})
    clone = original.clone()
    clone["nested"]["k"].append(2)

    assert original["nested"]["k"] == [1]


def test_serialize_front_matter():
    assert serialize_front_matter({}) == ""
    assert serialize_front_matter({"b": 1, "a": "x"}) == "---\na: x\nb: 1\n---\n"


def test_chunk_is_jumbo_compares_total_tokens():
    chunk = Chunk(file_path="a.md", file_title="a", chunk_index=1, text="t", tokens=901)

    assert chunk.is_jumbo(900)
    assert not chunk.is_jumbo(901)
