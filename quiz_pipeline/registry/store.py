"""
Registry Store: the Category -> Subcategory -> Topic hierarchy.

Slugs are stable foreign keys consumed by adapters, question stores and the
tracking index. All `ensure_*` operations are idempotent upserts by slug:
an identical call is a no-op, a call that disagrees with the stored entry
raises SchemaConflict and writes nothing.
"""

from pathlib import Path
from typing import Any, Optional, Union

from quiz_pipeline.db import Category, RegistryBase, SQLiteStore, Subcategory, Topic
from quiz_pipeline.errors import NotFound, SchemaConflict
from quiz_pipeline.logger import setup_logging


logger = setup_logging(logger_name="registry")


def _category_dict(row: Category) -> dict[str, Any]:
    return {
        "slug": row.slug,
        "name": row.name,
        "description": row.description,
        "icon": row.icon,
    }


def _subcategory_dict(row: Subcategory) -> dict[str, Any]:
    return {
        "slug": row.slug,
        "category": row.category,
        "name": row.name,
        "description": row.description,
    }


def _topic_dict(row: Topic) -> dict[str, Any]:
    return {
        "slug": row.slug,
        "category": row.category,
        "subcategory": row.subcategory,
        "name": row.name,
        "description": row.description,
        "total_parts": row.total_parts,
        "source_type": row.source_type,
        "source_url": row.source_url,
    }


def _check_conflicts(kind: str, slug: str, existing: dict, requested: dict) -> None:
    """Raise SchemaConflict if any requested (non-None) value differs from the stored one."""
    conflicts = [
        f"{field}: {existing.get(field)!r} != {value!r}"
        for field, value in requested.items()
        if value is not None and existing.get(field) != value
    ]
    if conflicts:
        raise SchemaConflict(f"{kind} '{slug}' already exists with different attributes ({'; '.join(conflicts)})")


class RegistryStore:
    """
    Registry of categories, subcategories and topics, backed by its own SQLite file.

    Usage:
        registry = RegistryStore(config.registry_path)
        registry.ensure_category("tv-shows", "TV Shows")
        registry.ensure_subcategory("tv-shows", "sitcoms", "Sitcoms")
        registry.ensure_topic("tv-shows", "sitcoms", "friends", "Friends", total_parts=10)
        registry.close()
    """

    def __init__(self, db_path: Union[str, Path]):
        self._db = SQLiteStore(db_path, metadata=RegistryBase.metadata, name="registry")

    def close(self) -> None:
        self._db.close()

    # ============ WRITES ============
    def ensure_category(
        self,
        slug: str,
        name: str,
        description: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> dict[str, Any]:
        with self._db.session() as session:
            existing = session.get(Category, slug)
            if existing is not None:
                _check_conflicts(
                    "Category",
                    slug,
                    _category_dict(existing),
                    {"name": name, "description": description, "icon": icon},
                )
                return _category_dict(existing)

            row = Category(slug=slug, name=name, description=description, icon=icon)
            session.add(row)
            session.commit()
            logger.info(f"Created category '{slug}'")
            return _category_dict(row)

    def ensure_subcategory(
        self,
        category: str,
        slug: str,
        name: str,
        description: Optional[str] = None,
    ) -> dict[str, Any]:
        with self._db.session() as session:
            if session.get(Category, category) is None:
                raise NotFound(f"Category '{category}' is not registered")

            existing = session.get(Subcategory, slug)
            if existing is not None:
                _check_conflicts(
                    "Subcategory",
                    slug,
                    _subcategory_dict(existing),
                    {"category": category, "name": name, "description": description},
                )
                return _subcategory_dict(existing)

            row = Subcategory(slug=slug, category=category, name=name, description=description)
            session.add(row)
            session.commit()
            logger.info(f"Created subcategory '{category}/{slug}'")
            return _subcategory_dict(row)

    def ensure_topic(
        self,
        category: str,
        subcategory: str,
        slug: str,
        name: str,
        total_parts: Optional[int] = None,
        source_type: Optional[str] = None,
        source_url: Optional[str] = None,
        description: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Create a topic, or return the existing one if it matches.

        Raises:
            NotFound: category or subcategory is not registered
            SchemaConflict: the slug exists under another parent, or with different
                attributes (use update_topic for deliberate changes)
        """
        with self._db.session() as session:
            parent = session.get(Subcategory, subcategory)
            if parent is None or parent.category != category:
                raise NotFound(f"Subcategory '{category}/{subcategory}' is not registered")

            existing = session.query(Topic).filter(Topic.slug == slug).one_or_none()
            if existing is not None:
                _check_conflicts(
                    "Topic",
                    slug,
                    _topic_dict(existing),
                    {
                        "category": category,
                        "subcategory": subcategory,
                        "name": name,
                        "total_parts": total_parts,
                        "source_type": source_type,
                        "source_url": source_url,
                        "description": description,
                    },
                )
                return _topic_dict(existing)

            row = Topic(
                slug=slug,
                category=category,
                subcategory=subcategory,
                name=name,
                total_parts=total_parts or 0,
                source_type=source_type,
                source_url=source_url,
                description=description,
            )
            session.add(row)
            session.commit()
            logger.info(f"Created topic '{category}/{subcategory}/{slug}'")
            return _topic_dict(row)

    def update_topic(self, slug: str, **changes: Any) -> dict[str, Any]:
        """
        Deliberately change a topic's attributes (e.g. total_parts grows).

        Parents are part of the topic's identity and cannot be changed.

        Raises:
            NotFound: unknown topic
            SchemaConflict: attempt to move the topic to another category/subcategory
            ValueError: unknown attribute name
        """
        allowed = {"name", "description", "total_parts", "source_type", "source_url"}
        with self._db.session() as session:
            row = session.query(Topic).filter(Topic.slug == slug).one_or_none()
            if row is None:
                raise NotFound(f"Topic '{slug}' is not registered")

            for field in ("category", "subcategory"):
                if field in changes and changes[field] != getattr(row, field):
                    raise SchemaConflict(f"Topic '{slug}' cannot move to another {field}")
                changes.pop(field, None)

            unknown = set(changes) - allowed
            if unknown:
                raise ValueError(f"Unknown topic attributes: {sorted(unknown)}")

            for field, value in changes.items():
                setattr(row, field, value)
            session.commit()
            logger.info(f"Updated topic '{slug}': {sorted(changes)}")
            return _topic_dict(row)

    # ============ READS ============
    def list_categories(self) -> list[dict[str, Any]]:
        with self._db.session() as session:
            rows = session.query(Category).order_by(Category.slug).all()
            return [_category_dict(r) for r in rows]

    def list_subcategories(self, category: Optional[str] = None) -> list[dict[str, Any]]:
        with self._db.session() as session:
            query = session.query(Subcategory)
            if category:
                query = query.filter(Subcategory.category == category)
            rows = query.order_by(Subcategory.category, Subcategory.slug).all()
            return [_subcategory_dict(r) for r in rows]

    def list_topics(
        self, category: Optional[str] = None, subcategory: Optional[str] = None
    ) -> list[dict[str, Any]]:
        with self._db.session() as session:
            query = session.query(Topic)
            if category:
                query = query.filter(Topic.category == category)
            if subcategory:
                query = query.filter(Topic.subcategory == subcategory)
            rows = query.order_by(Topic.category, Topic.subcategory, Topic.slug).all()
            return [_topic_dict(r) for r in rows]

    def get_topic(self, slug: str) -> Optional[dict[str, Any]]:
        with self._db.session() as session:
            row = session.query(Topic).filter(Topic.slug == slug).one_or_none()
            return _topic_dict(row) if row else None

    def require_topic(self, category: str, topic: str) -> dict[str, Any]:
        """Validate a generation target before any content is fetched."""
        found = self.get_topic(topic)
        if found is None or found["category"] != category:
            raise NotFound(f"Topic '{category}/{topic}' is not registered")
        return found

    def hierarchy(self) -> list[dict[str, Any]]:
        """Nested view: categories -> subcategories -> topics."""
        subcategories = self.list_subcategories()
        topics = self.list_topics()

        tree = []
        for category in self.list_categories():
            subs = []
            for sub in subcategories:
                if sub["category"] != category["slug"]:
                    continue
                subs.append(
                    {
                        **sub,
                        "topics": [t for t in topics if t["subcategory"] == sub["slug"]],
                    }
                )
            tree.append({**category, "subcategories": subs})
        return tree
