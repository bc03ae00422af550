"""Tests for SQLAlchemy ORM models.

Validates that:
- All models are registered with Base.metadata
- Tenant foreign keys cascade on architect deletion
- Composite uniqueness backs the answer and interaction upserts
- Required indexes exist
"""

from archimatch.models.db import (
    Architect,
    Base,
    ClientAnswer,
    ClientSession,
    InspirationPhoto,
    PhotoInteraction,
    Question,
    RoomType,
    photo_room_types,
)


def _fk(table, column: str):
    (fk,) = table.c[column].foreign_keys
    return fk


class TestAllTablesRegistered:
    def test_table_names(self):
        """All 8 tables are registered."""
        expected_tables = {
            "architects",
            "room_types",
            "questions",
            "inspiration_photos",
            "photo_room_types",
            "client_sessions",
            "client_answers",
            "photo_interactions",
        }
        assert set(Base.metadata.tables.keys()) == expected_tables


class TestArchitectModel:
    def test_email_is_unique(self):
        """architects.email carries a unique constraint."""
        assert Architect.__table__.c.email.unique

    def test_password_hash_required(self):
        """password_hash is not nullable."""
        assert not Architect.__table__.c.password_hash.nullable


class TestRoomTypeModel:
    def test_architect_fk_cascades(self):
        """Room types are deleted with their architect."""
        fk = _fk(RoomType.__table__, "architect_id")
        assert fk.target_fullname == "architects.id"
        assert fk.ondelete == "CASCADE"

    def test_parent_is_self_reference(self):
        """Deleting a category detaches its rooms rather than deleting them."""
        fk = _fk(RoomType.__table__, "parent_id")
        assert fk.target_fullname == "room_types.id"
        assert fk.ondelete == "SET NULL"
        assert RoomType.__table__.c.parent_id.nullable

    def test_indexes(self):
        """Room types are indexed by architect and by parent."""
        names = {idx.name for idx in RoomType.__table__.indexes}
        assert {"idx_room_types_architect", "idx_room_types_parent"} <= names


class TestQuestionModel:
    def test_room_type_fk(self):
        """Questions reference their room type."""
        fk = _fk(Question.__table__, "room_type_id")
        assert fk.target_fullname == "room_types.id"

    def test_options_nullable(self):
        """Non-choice questions carry no options."""
        assert Question.__table__.c.options.nullable


class TestInspirationPhotoModel:
    def test_session_is_optional(self):
        """Curated photos have no session, so session_id is nullable."""
        assert InspirationPhoto.__table__.c.session_id.nullable

    def test_room_associations_use_join_table(self):
        """Photo rooms live in photo_room_types."""
        assert InspirationPhoto.room_types.property.secondary is photo_room_types

    def test_join_table_primary_key(self):
        """The join table is keyed on (photo, room type)."""
        pk = {col.name for col in photo_room_types.primary_key.columns}
        assert pk == {"photo_id", "room_type_id"}


class TestClientSessionModel:
    def test_status_default(self):
        """New sessions default to in_progress."""
        assert ClientSession.__table__.c.status.default.arg == "in_progress"

    def test_answers_cascade_delete_orphan(self):
        """Answers are removed with their session."""
        cascade = ClientSession.answers.property.cascade
        assert cascade.delete_orphan
        assert cascade.delete

    def test_general_info_columns_present(self):
        """Every general-info field has a column."""
        columns = set(ClientSession.__table__.c.keys())
        assert {
            "project_type",
            "housing_type",
            "household_adults",
            "has_animals",
            "desired_organization",
            "selected_room_types",
        } <= columns


class TestUniqueness:
    def _unique_sets(self, table) -> set[tuple[str, ...]]:
        return {
            tuple(col.name for col in constraint.columns)
            for constraint in table.constraints
            if constraint.__class__.__name__ == "UniqueConstraint"
        }

    def test_one_answer_per_question(self):
        """(session, question) is unique for answers."""
        assert ("session_id", "question_id") in self._unique_sets(ClientAnswer.__table__)

    def test_one_interaction_per_photo(self):
        """(session, photo) is unique for interactions."""
        assert ("session_id", "photo_id") in self._unique_sets(PhotoInteraction.__table__)
