from pathlib import Path

import pytest

from memvault.memory.chunking import chunk_document, chunk_entire_vault, chunk_vault_file, split_sections


def test_empty_and_whitespace_only_yield_no_chunks(temp_vault: Path):
    (temp_vault / "empty.md").write_text("", encoding="utf-8")
    (temp_vault / "blank.md").write_text("   \n\n\t\n", encoding="utf-8")

    assert chunk_vault_file(temp_vault, "empty.md") == []
    assert chunk_vault_file(temp_vault, "blank.md") == []
    assert chunk_document("", "x.md") == []


def test_missing_file_yields_no_chunks(temp_vault: Path):
    assert chunk_vault_file(temp_vault, "nope.md") == []


def test_document_without_headings_is_one_section():
    chunks = chunk_document("Just some notes.\n\nAnother paragraph.\n", "notes.md", max_chars=2000)
    assert len(chunks) == 1
    assert chunks[0].content == "Just some notes.\n\nAnother paragraph."
    assert chunks[0].chunk_index == 0
    assert chunks[0].source_file == "notes.md"


def test_level_two_and_three_headings_start_new_chunks():
    doc = "# Title\nIntro\n\n## Food\nPasta\n\n### Breakfast\nEggs\n\n#### Deep\nStill breakfast\n"
    chunks = chunk_document(doc, "a.md", max_chars=2000)

    assert [c.content for c in chunks] == [
        "# Title\nIntro",
        "## Food\nPasta",
        "### Breakfast\nEggs\n\n#### Deep\nStill breakfast",
    ]
    assert [c.chunk_index for c in chunks] == [0, 1, 2]


def test_heading_marker_mid_line_does_not_split():
    sections = split_sections("Use ## for headings\n\nmore text")
    assert len(sections) == 1


def test_long_section_packs_paragraphs_within_bound():
    paras = [f"Paragraph {i} " + ("x" * 40) for i in range(10)]
    doc = "## Long\n" + "\n\n".join(paras)
    chunks = chunk_document(doc, "long.md", max_chars=120)

    assert len(chunks) > 1
    for c in chunks:
        assert len(c.content) <= 120
        assert c.content == c.content.strip()
    # Nothing lost and order preserved.
    joined = "\n\n".join(c.content for c in chunks)
    for p in paras:
        assert p in joined
    assert [c.chunk_index for c in chunks] == list(range(len(chunks)))


def test_oversized_paragraph_is_emitted_whole():
    big = "y" * 500
    doc = "## Section\nshort intro\n\n" + big + "\n\ntail paragraph"
    chunks = chunk_document(doc, "big.md", max_chars=100)

    contents = [c.content for c in chunks]
    assert big in contents
    assert contents == ["## Section\nshort intro", big, "tail paragraph"]


def test_chunking_is_deterministic():
    doc = "## A\n" + "\n\n".join(f"para {i} " * 10 for i in range(30)) + "\n## B\nend\n"
    first = chunk_document(doc, "d.md", max_chars=200)
    second = chunk_document(doc, "d.md", max_chars=200)
    assert first == second


def test_chunks_within_bound_are_not_split_again():
    doc = "## A\n" + "\n\n".join(f"para {i} " * 8 for i in range(20))
    for c in chunk_document(doc, "d.md", max_chars=150):
        if len(c.content) <= 150:
            again = chunk_document(c.content, "d.md", max_chars=150)
            assert [x.content for x in again] == [c.content]


def test_invalid_max_chars_rejected():
    with pytest.raises(ValueError):
        chunk_document("text", "a.md", max_chars=0)


def test_chunk_entire_vault_skips_hidden_dirs_and_non_markdown(temp_vault: Path):
    (temp_vault / "a.md").write_text("## A\none\n", encoding="utf-8")
    (temp_vault / "notes.txt").write_text("ignored", encoding="utf-8")
    (temp_vault / ".obsidian").mkdir()
    (temp_vault / ".obsidian" / "hidden.md").write_text("## Hidden\n", encoding="utf-8")
    (temp_vault / "memories").mkdir()
    (temp_vault / "memories" / "2026-02-12.md").write_text("## 10:00\nsummary\n", encoding="utf-8")

    chunks = chunk_entire_vault(temp_vault)
    assert {c.source_file for c in chunks} == {"a.md", "memories/2026-02-12.md"}
