"""Tests for the Category -> Subcategory -> Topic registry."""

from pathlib import Path

import pytest

from quiz_pipeline.errors import NotFound, SchemaConflict
from quiz_pipeline.registry import RegistryStore


@pytest.fixture
def registry(tmp_path: Path):
    store = RegistryStore(tmp_path / "registry.db")
    store.ensure_category("tv-shows", "TV Shows", icon="tv")
    store.ensure_subcategory("tv-shows", "sitcoms", "Sitcoms")
    store.ensure_subcategory("tv-shows", "drama", "Drama")
    yield store
    store.close()


class TestEnsureIdempotence:
    def test_identical_category_twice_creates_one_row(self, registry: RegistryStore) -> None:
        registry.ensure_category("movies", "Movies")
        registry.ensure_category("movies", "Movies")
        slugs = [c["slug"] for c in registry.list_categories()]
        assert slugs.count("movies") == 1

    def test_identical_topic_twice_creates_one_row(self, registry: RegistryStore) -> None:
        first = registry.ensure_topic("tv-shows", "sitcoms", "friends", "Friends", total_parts=10)
        second = registry.ensure_topic("tv-shows", "sitcoms", "friends", "Friends", total_parts=10)
        assert first == second
        assert len(registry.list_topics()) == 1

    def test_omitted_attributes_do_not_conflict(self, registry: RegistryStore) -> None:
        registry.ensure_topic(
            "tv-shows", "sitcoms", "friends", "Friends", total_parts=10, source_type="transcript"
        )
        topic = registry.ensure_topic("tv-shows", "sitcoms", "friends", "Friends")
        assert topic["total_parts"] == 10
        assert topic["source_type"] == "transcript"


class TestSchemaConflicts:
    def test_topic_under_other_subcategory_conflicts(self, registry: RegistryStore) -> None:
        registry.ensure_topic("tv-shows", "sitcoms", "friends", "Friends")
        with pytest.raises(SchemaConflict):
            registry.ensure_topic("tv-shows", "drama", "friends", "Friends")

        topics = registry.list_topics()
        assert len(topics) == 1
        assert topics[0]["subcategory"] == "sitcoms"

    def test_topic_under_other_category_conflicts(self, registry: RegistryStore) -> None:
        registry.ensure_topic("tv-shows", "sitcoms", "friends", "Friends")
        registry.ensure_category("movies", "Movies")
        registry.ensure_subcategory("movies", "films", "Films")

        with pytest.raises(SchemaConflict):
            registry.ensure_topic("movies", "films", "friends", "Friends")

        topics = registry.list_topics()
        assert len(topics) == 1
        assert topics[0]["category"] == "tv-shows"
        assert registry.list_topics(category="movies") == []

    def test_topic_with_different_total_parts_conflicts(self, registry: RegistryStore) -> None:
        registry.ensure_topic("tv-shows", "sitcoms", "friends", "Friends", total_parts=10)
        with pytest.raises(SchemaConflict):
            registry.ensure_topic("tv-shows", "sitcoms", "friends", "Friends", total_parts=9)
        assert registry.get_topic("friends")["total_parts"] == 10

    def test_subcategory_under_other_category_conflicts(self, registry: RegistryStore) -> None:
        registry.ensure_category("movies", "Movies")
        with pytest.raises(SchemaConflict):
            registry.ensure_subcategory("movies", "sitcoms", "Sitcoms")

    def test_category_with_different_name_conflicts(self, registry: RegistryStore) -> None:
        with pytest.raises(SchemaConflict):
            registry.ensure_category("tv-shows", "Television")


class TestMissingParents:
    def test_subcategory_without_category(self, registry: RegistryStore) -> None:
        with pytest.raises(NotFound):
            registry.ensure_subcategory("sports", "cricket", "Cricket")

    def test_topic_without_subcategory(self, registry: RegistryStore) -> None:
        with pytest.raises(NotFound):
            registry.ensure_topic("tv-shows", "anime", "naruto", "Naruto")
        assert registry.list_topics() == []

    def test_topic_with_mismatched_category(self, registry: RegistryStore) -> None:
        registry.ensure_category("movies", "Movies")
        with pytest.raises(NotFound):
            registry.ensure_topic("movies", "sitcoms", "friends", "Friends")


class TestUpdateTopic:
    def test_total_parts_can_grow(self, registry: RegistryStore) -> None:
        registry.ensure_topic("tv-shows", "sitcoms", "friends", "Friends", total_parts=9)
        updated = registry.update_topic("friends", total_parts=10)
        assert updated["total_parts"] == 10
        assert registry.get_topic("friends")["total_parts"] == 10

    def test_parents_cannot_change(self, registry: RegistryStore) -> None:
        registry.ensure_topic("tv-shows", "sitcoms", "friends", "Friends")
        with pytest.raises(SchemaConflict):
            registry.update_topic("friends", subcategory="drama")

    def test_unknown_topic(self, registry: RegistryStore) -> None:
        with pytest.raises(NotFound):
            registry.update_topic("seinfeld", total_parts=9)

    def test_unknown_attribute(self, registry: RegistryStore) -> None:
        registry.ensure_topic("tv-shows", "sitcoms", "friends", "Friends")
        with pytest.raises(ValueError):
            registry.update_topic("friends", rating=5)


class TestReads:
    def test_list_filters(self, registry: RegistryStore) -> None:
        registry.ensure_topic("tv-shows", "sitcoms", "friends", "Friends")
        registry.ensure_topic("tv-shows", "drama", "breaking-bad", "Breaking Bad")

        assert [s["slug"] for s in registry.list_subcategories("tv-shows")] == ["drama", "sitcoms"]
        assert [t["slug"] for t in registry.list_topics(subcategory="drama")] == ["breaking-bad"]
        assert len(registry.list_topics(category="tv-shows")) == 2
        assert registry.list_topics(category="movies") == []

    def test_require_topic(self, registry: RegistryStore) -> None:
        registry.ensure_topic("tv-shows", "sitcoms", "friends", "Friends")
        assert registry.require_topic("tv-shows", "friends")["name"] == "Friends"
        with pytest.raises(NotFound):
            registry.require_topic("movies", "friends")
        with pytest.raises(NotFound):
            registry.require_topic("tv-shows", "seinfeld")

    def test_hierarchy(self, registry: RegistryStore) -> None:
        registry.ensure_topic("tv-shows", "sitcoms", "friends", "Friends")
        tree = registry.hierarchy()

        assert [c["slug"] for c in tree] == ["tv-shows"]
        subcategories = {s["slug"]: s for s in tree[0]["subcategories"]}
        assert [t["slug"] for t in subcategories["sitcoms"]["topics"]] == ["friends"]
        assert subcategories["drama"]["topics"] == []

    def test_persists_across_instances(self, tmp_path: Path) -> None:
        path = tmp_path / "registry.db"
        first = RegistryStore(path)
        first.ensure_category("sports", "Sports")
        first.close()

        second = RegistryStore(path)
        assert [c["slug"] for c in second.list_categories()] == ["sports"]
        second.close()
