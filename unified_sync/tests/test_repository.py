"""Unified object repository tests"""

from sqlalchemy import func, select

from unified_sync.models.unified_object import STATE_ACTIVE, STATE_DELETED, UnifiedObject
from unified_sync.services.repository import (
    UnifiedObjectRepository,
    UpsertOutcome,
    slugify,
)

from conftest import make_candidate


def count_rows(db):
    return db.execute(select(func.count()).select_from(UnifiedObject)).scalar()


class TestCreate:
    def test_create_assigns_id_url_and_state(self, db):
        obj = UnifiedObjectRepository(db).create(make_candidate())
        assert obj.id is not None
        assert obj.canonical_url == f"/item/{obj.id}"
        assert obj.state == STATE_ACTIVE

    def test_create_with_slug_uses_slug_path(self, db):
        obj = UnifiedObjectRepository(db).create(make_candidate(slug="roadmap-abc123"))
        assert obj.canonical_url == "/item/roadmap-abc123"

    def test_second_create_on_same_key_keeps_one_row(self, db):
        repo = UnifiedObjectRepository(db)
        first = repo.create(make_candidate(title="Roadmap"))
        second = repo.create(make_candidate(title="Roadmap v2"))

        assert count_rows(db) == 1
        assert second.id == first.id
        assert second.canonical_url == first.canonical_url
        assert second.title == "Roadmap v2"

    def test_upsert_outcomes(self, db):
        repo = UnifiedObjectRepository(db)
        assert repo.upsert(make_candidate())[0] is UpsertOutcome.CREATED
        assert repo.upsert(make_candidate())[0] is UpsertOutcome.UNCHANGED
        assert repo.upsert(make_candidate(title="Changed"))[0] is UpsertOutcome.UPDATED


class TestUpdate:
    def test_canonical_url_survives_updates(self, db):
        repo = UnifiedObjectRepository(db)
        obj = repo.create(make_candidate())
        original_url = obj.canonical_url
        created_at = obj.created_at

        for title in ("Roadmap 2025", "Roadmap 2026", "Final roadmap"):
            obj = repo.update(obj.id, make_candidate(title=title))

        assert obj.title == "Final roadmap"
        assert obj.canonical_url == original_url
        assert obj.created_at == created_at

    def test_update_with_same_hash_is_noop(self, db):
        repo = UnifiedObjectRepository(db)
        obj = repo.create(make_candidate())
        before = obj.updated_at

        after = repo.update(obj.id, make_candidate())
        assert after.updated_at == before

    def test_assign_slug_leaves_canonical_url(self, db):
        repo = UnifiedObjectRepository(db)
        obj = repo.create(make_candidate())
        slug = slugify(obj.title, obj.id)

        repo.assign_slug(obj.id, slug)
        obj = repo.get(obj.id)
        assert obj.slug == slug
        assert obj.canonical_url == f"/item/{obj.id}"
        assert repo.get_by_id_or_slug(slug).id == obj.id
        assert repo.get_by_id_or_slug(str(obj.id)).id == obj.id


class TestSoftDelete:
    def test_mark_deleted_is_monotonic(self, db):
        repo = UnifiedObjectRepository(db)
        obj = repo.create(make_candidate())

        assert repo.mark_deleted("google-drive", "r1") is True
        assert repo.mark_deleted("google-drive", "r1") is False
        assert repo.get(obj.id).state == STATE_DELETED

    def test_update_does_not_reactivate(self, db):
        repo = UnifiedObjectRepository(db)
        obj = repo.create(make_candidate())
        repo.mark_deleted("google-drive", "r1")

        obj = repo.update(obj.id, make_candidate(title="Back again"))
        assert obj.title == "Back again"
        assert obj.state == STATE_DELETED

        _, obj = repo.upsert(make_candidate(title="Back once more"))
        assert obj.state == STATE_DELETED

    def test_reactivate(self, db):
        repo = UnifiedObjectRepository(db)
        obj = repo.create(make_candidate())
        repo.mark_deleted("google-drive", "r1")

        assert repo.reactivate(obj.id).state == STATE_ACTIVE

    def test_mark_deleted_unknown_record(self, db):
        assert UnifiedObjectRepository(db).mark_deleted("google-drive", "missing") is False


class TestQueries:
    def test_list_and_count_filters(self, db):
        repo = UnifiedObjectRepository(db)
        repo.create(make_candidate("a"))
        repo.create(make_candidate("b", connection_id="c2"))
        repo.create(make_candidate("c", provider="github"))
        repo.mark_deleted("google-drive", "b")

        assert repo.count(provider="google-drive") == 2
        assert repo.count(provider="google-drive", state=STATE_ACTIVE) == 1
        assert [o.external_id for o in repo.list_objects(connection_id="c1", provider="github")] == ["c"]
        assert repo.counts_by("provider") == {"google-drive": 1, "github": 1}

    def test_purge_for_connection(self, db):
        repo = UnifiedObjectRepository(db)
        repo.create(make_candidate("a"))
        repo.create(make_candidate("b"))
        repo.create(make_candidate("c", connection_id="c2"))

        assert repo.purge_for_connection("c1", "google-drive", "file") == 2
        assert count_rows(db) == 1

    def test_slugify(self):
        assert slugify("Q3 Plan: Draft!", "0f8fad5b-d9cb-469f-a165-70867728950e") == "q3-plan-draft-28950e"
        assert slugify("", "abcdef123456") == "untitled-123456"
