from copilet.core.notes import extract_slash_commands, generate_note_content


README = """# Foo

| Command | Description |
|---------|-------------|
| `/foo:plan` | Plan a change |
| `/foo:review` | Review a diff |
| `/bar:other` | Not ours |
"""


def test_extract_only_matches_plugin_prefix():
    assert extract_slash_commands(README, "foo") == ["plan", "review"]


def test_note_lists_local_commands():
    note = generate_note_content(README, "foo")
    assert "| `/plan` |" in note
    assert "| `/review` |" in note
    assert "/foo:" not in note
    assert "SLASH-COMMAND-NOTE" not in note


def test_note_placeholder_when_nothing_matches():
    note = generate_note_content("no tables here", "foo")
    assert "| (none) |" in note


def test_plugin_id_is_matched_literally():
    readme = "| `/a.b:cmd` |\n| `/axb:cmd2` |"
    assert extract_slash_commands(readme, "a.b") == ["cmd"]
