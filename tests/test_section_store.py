import pytest

from qredi_web.section_store import SectionStore


@pytest.fixture
def store(tmp_path):
    return SectionStore(f"sqlite:///{tmp_path / 'sections.sqlite3'}", max_sections=3)


def test_save_and_list(store, extraction_reply):
    assert store.save_section("user-a", "s1", "Crédito uno", extraction_reply, {"strategy": "amortized"})
    sections = store.list_sections("user-a")
    assert len(sections) == 1
    assert sections[0]["id"] == "s1"
    assert sections[0]["position"] == 1
    assert sections[0]["original_message"] == "Crédito uno"
    assert sections[0]["raw_response"] == extraction_reply
    assert sections[0]["result"] == {"strategy": "amortized"}


def test_result_is_optional(store, extraction_reply):
    store.save_section("user-a", "s1", "uno", extraction_reply)
    assert store.list_sections("user-a")[0]["result"] is None


def test_rerun_replaces_section_in_place(store, extraction_reply):
    store.save_section("user-a", "s1", "first", extraction_reply)
    store.save_section("user-a", "s2", "other", extraction_reply)
    changed = dict(extraction_reply, monto=5000)
    store.save_section("user-a", "s1", "second", changed)

    sections = store.list_sections("user-a")
    assert [s["id"] for s in sections] == ["s1", "s2"]
    assert sections[0]["original_message"] == "second"
    assert sections[0]["raw_response"] == changed


def test_users_are_isolated(store, extraction_reply):
    store.save_section("user-a", "s1", "mine", extraction_reply)
    assert not store.save_section("user-b", "s1", "theirs", extraction_reply)
    assert not store.remove_section("user-b", "s1")
    assert store.list_sections("user-b") == []
    assert [s["original_message"] for s in store.list_sections("user-a")] == ["mine"]


def test_remove_and_clear(store, extraction_reply):
    for i in range(3):
        store.save_section("user-a", f"s{i}", f"credit {i}", extraction_reply)
    assert store.remove_section("user-a", "s1")
    assert not store.remove_section("user-a", "s1")
    assert [s["id"] for s in store.list_sections("user-a")] == ["s0", "s2"]
    assert store.clear_sections("user-a") == 2
    assert store.list_sections("user-a") == []


def test_oldest_sections_are_dropped(store, extraction_reply):
    for i in range(5):
        store.save_section("user-a", f"s{i}", f"credit {i}", extraction_reply)
    assert [s["id"] for s in store.list_sections("user-a")] == ["s2", "s3", "s4"]


def test_new_section_goes_after_the_last_one(store, extraction_reply):
    for i in range(3):
        store.save_section("user-a", f"s{i}", f"credit {i}", extraction_reply)
    store.remove_section("user-a", "s2")
    store.save_section("user-a", "s9", "credit 9", extraction_reply)
    assert [s["position"] for s in store.list_sections("user-a")] == [1, 2, 3]
    assert store.list_sections("user-a")[-1]["id"] == "s9"


def test_shared_records(store, extraction_reply):
    store.save_section("user-a", "s1", "uno", extraction_reply, {"strategy": "amortized"})
    assert store.shared_records("user-a") == [
        {"originalMessage": "uno", "rawApiResponse": extraction_reply}
    ]
    assert store.shared_records("user-b") == []


def test_missing_token_is_ignored(store, extraction_reply):
    assert not store.save_section("", "s1", "anonymous", extraction_reply)
    assert store.list_sections("") == []
    assert store.clear_sections("") == 0
