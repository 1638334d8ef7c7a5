import json
import re
import stat
import sys
from pathlib import Path

import pytest

from board import BoardStore, default_board, utc_timestamp


def test_read_missing_file_returns_none(tmp_path: Path) -> None:
    assert BoardStore(tmp_path / "missing.txt").read() is None


def test_read_blank_or_corrupt_file_returns_none(tmp_path: Path) -> None:
    path = tmp_path / "board.txt"
    store = BoardStore(path)

    path.write_text("   \n", encoding="utf-8")
    assert store.read() is None

    path.write_text('{"version": 1, "content": ', encoding="utf-8")
    assert store.read() is None

    path.write_text("[1, 2, 3]", encoding="utf-8")
    assert store.read() is None


def test_write_then_read_round_trip(tmp_path: Path) -> None:
    store = BoardStore(tmp_path / "data" / "board.txt")
    doc = {
        "version": 1,
        "updatedAt": utc_timestamp(),
        "content": {"subtitle": "Café ☕", "goalsItems": ["a", "b"]},
        "moodImages": ["mood_20260101000000_1234.png"],
    }
    store.write(doc)

    loaded = store.read()
    assert loaded["content"] == doc["content"]
    assert loaded["moodImages"] == doc["moodImages"]
    assert "Café ☕" in store.path.read_text(encoding="utf-8")
    assert list(store.path.parent.glob("*.tmp")) == []


def test_default_board_shape() -> None:
    doc = default_board()
    assert doc["version"] == 1
    assert doc["moodImages"] == []
    assert doc["content"]["intentionsTitle"] == "Intentions"
    assert len(doc["content"]["habitsItems"]) == 4
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", doc["updatedAt"])


def test_default_board_is_a_fresh_copy() -> None:
    first = default_board()
    first["content"]["goalsItems"].append("mutated")
    assert "mutated" not in default_board()["content"]["goalsItems"]


def test_load_falls_back_to_default(store: BoardStore) -> None:
    assert store.load()["content"] == default_board()["content"]
    assert not store.path.exists()


def test_save_replaces_fields_wholesale(store: BoardStore) -> None:
    store.save({"content": {"a": 1, "b": 2}, "moodImages": ["x.png"]})
    saved = store.save({"content": {"a": 1}})

    assert saved["content"] == {"a": 1}
    assert saved["moodImages"] == ["x.png"]
    assert store.read()["content"] == {"a": 1}


def test_save_ignores_fields_of_the_wrong_shape(store: BoardStore) -> None:
    store.save({"content": {"title": "kept"}, "moodImages": ["x.png"]})
    store.save({"content": ["not", "an", "object"], "moodImages": "nope"})

    doc = store.read()
    assert doc["content"] == {"title": "kept"}
    assert doc["moodImages"] == ["x.png"]
    assert doc["version"] == 1


def test_remove_mood_image_drops_every_occurrence(store: BoardStore) -> None:
    store.save({"moodImages": ["a.png", "b.png", "a.png"]})
    before = store.read()["updatedAt"]

    assert store.remove_mood_image("a.png") is True

    doc = store.read()
    assert doc["moodImages"] == ["b.png"]
    assert doc["updatedAt"] >= before


def test_remove_mood_image_without_document_is_noop(store: BoardStore) -> None:
    assert store.remove_mood_image("a.png") is False
    assert not store.path.exists()


def test_remove_mood_image_with_non_list_images_is_noop(store: BoardStore) -> None:
    store.path.parent.mkdir(parents=True, exist_ok=True)
    store.path.write_text(json.dumps({"version": 1, "moodImages": "a.png"}), encoding="utf-8")

    assert store.remove_mood_image("a.png") is False
    assert json.loads(store.path.read_text(encoding="utf-8"))["moodImages"] == "a.png"


def test_read_non_finite_numbers_as_corrupt(tmp_path: Path) -> None:
    path = tmp_path / "board.txt"
    store = BoardStore(path)

    for literal in ("NaN", "Infinity", "-Infinity", "1e400"):
        path.write_text(f'{{"version": 1, "content": {{"a": {literal}}}}}', encoding="utf-8")
        assert store.read() is None


def test_write_refuses_non_finite_numbers(store: BoardStore) -> None:
    store.write({"version": 1, "content": {"a": 1}, "moodImages": []})

    with pytest.raises(ValueError):
        store.write({"version": 1, "content": {"a": float("nan")}, "moodImages": []})

    assert store.read()["content"] == {"a": 1}
    assert list(store.path.parent.glob("*.tmp")) == []


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permission bits")
def test_write_leaves_board_world_readable(store: BoardStore) -> None:
    store.write(default_board())
    assert stat.S_IMODE(store.path.stat().st_mode) == 0o644
