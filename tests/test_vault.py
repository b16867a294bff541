from memvault.vault import list_vault_files, read_vault_file


def test_list_vault_files_sorted_posix(temp_vault):
    (temp_vault / "b.md").write_text("b", encoding="utf-8")
    (temp_vault / "a.md").write_text("a", encoding="utf-8")
    (temp_vault / "memories").mkdir()
    (temp_vault / "memories" / "2026-02-12.md").write_text("m", encoding="utf-8")
    (temp_vault / ".trash").mkdir()
    (temp_vault / ".trash" / "old.md").write_text("x", encoding="utf-8")
    (temp_vault / "image.png").write_bytes(b"\x89PNG")

    assert list_vault_files(temp_vault) == ["a.md", "b.md", "memories/2026-02-12.md"]


def test_missing_vault_is_empty(tmp_path):
    assert list_vault_files(tmp_path / "missing") == []


def test_read_vault_file(temp_vault):
    (temp_vault / "heartbeat.md").write_text("- check mail\n", encoding="utf-8")
    assert read_vault_file(temp_vault, "heartbeat.md") == "- check mail\n"
    assert read_vault_file(temp_vault, "absent.md") is None
