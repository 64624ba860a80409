"""
Tests for the JSON-backed session store.
"""

from recengine.services.session_store import COLLECTION_KEY, STAGE_KEY, SessionStore


class TestSessionStore:
    """Tests for SessionStore."""

    def test_missing_file_is_empty(self, tmp_path):
        store = SessionStore(tmp_path / "missing" / "state.json")
        assert store.get("anything") is None
        assert store.load_stage("brand-a") == 1

    def test_stage_persists_per_brand(self, tmp_path):
        path = tmp_path / "state.json"
        SessionStore(path).save_stage("brand-a", 3)

        reopened = SessionStore(path)
        assert reopened.load_stage("brand-a") == 3
        assert reopened.load_stage("brand-b") == 1
        assert reopened.get(STAGE_KEY.format(brand_id="brand-a")) == 3

    def test_out_of_range_stage_falls_back(self, store):
        store.set(STAGE_KEY.format(brand_id="brand-a"), 7)
        assert store.load_stage("brand-a") == 1

        store.set(STAGE_KEY.format(brand_id="brand-a"), "three")
        assert store.load_stage("brand-a") == 1

    def test_save_stage_ignores_missing_brand(self, store):
        store.save_stage(None, 2)
        assert not store.path.exists()

    def test_collection_flag(self, store):
        assert not store.is_collection_in_progress("brand-a")
        store.mark_collection_in_progress("brand-a")
        assert store.is_collection_in_progress("brand-a")
        assert store.get(COLLECTION_KEY.format(brand_id="brand-a")) is True

        store.clear_collection_in_progress("brand-a")
        assert not store.is_collection_in_progress("brand-a")

    def test_corrupt_file_behaves_as_empty(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{not json", encoding="utf-8")
        store = SessionStore(path)

        assert store.load_stage("brand-a") == 1
        store.save_stage("brand-a", 2)
        assert store.load_stage("brand-a") == 2
