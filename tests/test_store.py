"""Unit tests for auth/store.py and core/schema.py.

Covers:
- create_user / get_by_username / get_by_id round trip through the row mapper
- UNIQUE(username) raises IntegrityError regardless of any pre-check
- the role CHECK constraint rejects values outside the enum
- update_last_login stamps timestamp and address
- the full exam schema is created, with foreign keys enforced
"""

from datetime import datetime

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError

from auth.models import User, to_profile
from auth.store import UserStore
from core.schema import courses, metadata, questions, users_to_courses


def _user(username: str = "bob", role: str = "teacher") -> User:
    return User(username=username, role=role, real_name="Bob B", hashed_password="$2b$04$placeholder")


def test_create_and_fetch_user(store: UserStore) -> None:
    uid = store.create_user(_user())

    by_name = store.get_by_username("bob")
    by_id = store.get_by_id(uid)

    assert by_name == by_id
    assert by_name.id == uid
    assert by_name.role == "teacher"
    assert by_name.real_name == "Bob B"
    assert by_name.hashed_password == "$2b$04$placeholder"
    assert by_name.created_at is not None
    assert by_name.last_login is None
    assert by_name.deleted_at is None


def test_lookup_is_case_sensitive(store: UserStore) -> None:
    store.create_user(_user("bob"))
    assert store.get_by_username("BOB") is None


def test_missing_user_returns_none(store: UserStore) -> None:
    assert store.get_by_username("ghost") is None
    assert store.get_by_id(12345) is None


def test_duplicate_username_raises_integrity_error(store: UserStore) -> None:
    store.create_user(_user("bob"))
    with pytest.raises(IntegrityError):
        store.create_user(_user("bob", role="student"))


def test_invalid_role_rejected_by_database(store: UserStore) -> None:
    with pytest.raises(IntegrityError):
        store.create_user(_user("carol", role="superuser"))


def test_has_users(store: UserStore) -> None:
    assert store.has_users() is False
    store.create_user(_user())
    assert store.has_users() is True


def test_update_last_login(store: UserStore) -> None:
    uid = store.create_user(_user())

    store.update_last_login(uid, "10.0.0.7")

    user = store.get_by_id(uid)
    assert user.last_login_ip == "10.0.0.7"
    assert datetime.fromisoformat(user.last_login).tzinfo is not None


def test_profile_excludes_password_hash(store: UserStore) -> None:
    uid = store.create_user(_user())
    profile = to_profile(store.get_by_id(uid))

    assert profile.id == uid
    assert not hasattr(profile, "hashed_password")


def test_to_profile_requires_saved_user() -> None:
    with pytest.raises(ValueError):
        to_profile(_user())


def test_ping(store: UserStore) -> None:
    assert store.ping() is True


def test_full_schema_created(store: UserStore) -> None:
    tables = set(inspect(store.engine).get_table_names())
    assert tables == set(metadata.tables)
    assert {
        "users",
        "courses",
        "users_to_courses",
        "questions",
        "questions_collections",
        "questions_to_collections",
        "exam_exercises",
        "exam_exercise_submissions",
        "answer_submissions",
    } <= tables


def test_foreign_keys_enforced(store: UserStore) -> None:
    with store.engine.connect() as conn:
        with pytest.raises(IntegrityError):
            conn.execute(
                courses.insert().values(name="Orphan", teacher_id=999, created_at="x", updated_at="x")
            )


def test_enrolment_cascades_on_course_delete(store: UserStore) -> None:
    teacher_id = store.create_user(_user("teach", role="teacher"))
    student_id = store.create_user(_user("stud", role="student"))
    with store.engine.connect() as conn:
        course_id = conn.execute(
            courses.insert().values(name="Algebra", teacher_id=teacher_id, created_at="t", updated_at="t")
        ).inserted_primary_key[0]
        conn.execute(
            users_to_courses.insert().values(user_id=student_id, course_id=course_id, created_at="t", updated_at="t")
        )
        conn.execute(courses.delete().where(courses.c.id == course_id))
        remaining = conn.execute(users_to_courses.select()).fetchall()
        conn.commit()
    assert remaining == []


def test_question_type_check_constraint(store: UserStore) -> None:
    author_id = store.create_user(_user())
    with store.engine.connect() as conn:
        with pytest.raises(IntegrityError):
            conn.execute(
                questions.insert().values(
                    author_id=author_id,
                    content="2 + 2?",
                    type="oral",
                    data="{}",
                    created_at="t",
                    updated_at="t",
                )
            )
