"""
core/schema.py -- Relational schema for ExamBank (SQLAlchemy Core).

One shared MetaData holds every table so foreign keys resolve across
entities and a single create_all() builds the whole database. Stores import
the Table objects they need; nothing outside a store writes SQL.

Conventions:
  - Timestamps are ISO 8601 UTC strings (String(32)), set by the stores.
  - deleted_at is a soft-delete marker. No code path sets it yet.
  - JSON payloads (question data, tags, answers) are stored as Text.
  - Enum-valued columns carry CHECK constraints so bad values fail at the DB.

Tables:
  users, courses, users_to_courses,
  questions, questions_collections, questions_to_collections,
  exam_exercises, exam_exercise_submissions, answer_submissions
"""

from __future__ import annotations

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Table,
    Text,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine

USER_ROLES: tuple[str, ...] = ("student", "teacher", "admin")
QUESTION_TYPES: tuple[str, ...] = (
    "single-choice",
    "multiple-choice",
    "true-false",
    "fill-in-the-blank",
    "essay",
    "program-judge",
)
EXAM_TYPES: tuple[str, ...] = ("practice", "exam")
SORT_MODES: tuple[str, ...] = ("fixed", "random")

metadata = MetaData()


def _in(column: str, values: tuple[str, ...]) -> str:
    quoted = ", ".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


def _timestamps() -> list[Column]:
    return [
        Column("created_at", String(32), nullable=False),
        Column("updated_at", String(32), nullable=False),
        Column("deleted_at", String(32)),
    ]


def _base_columns() -> list[Column]:
    return [Column("id", Integer, primary_key=True, autoincrement=True), *_timestamps()]


# ---------------------------------------------------------------------------
# Users and courses
# ---------------------------------------------------------------------------

users = Table(
    "users",
    metadata,
    *_base_columns(),
    Column("role", String(16), nullable=False),
    Column("username", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("real_name", String(255), nullable=False),
    Column("last_login", String(32)),
    Column("last_login_ip", String(45)),
    CheckConstraint(_in("role", USER_ROLES), name="ck_users_role"),
)

courses = Table(
    "courses",
    metadata,
    *_base_columns(),
    Column("name", String(255), nullable=False),
    Column("teacher_id", Integer, ForeignKey("users.id"), nullable=False),
)

# Students enrolled in courses
users_to_courses = Table(
    "users_to_courses",
    metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("course_id", Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False),
    *_timestamps(),
    PrimaryKeyConstraint("user_id", "course_id"),
)

# ---------------------------------------------------------------------------
# Questions and collections
# ---------------------------------------------------------------------------

questions = Table(
    "questions",
    metadata,
    *_base_columns(),
    Column("global_id", String(255)),  # id in an online question bank, if imported
    Column("global_author_id", String(255)),
    Column("author_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("fork_from", Integer, ForeignKey("questions.id", ondelete="SET NULL")),
    Column("content", Text, nullable=False),
    Column("type", String(32), nullable=False),
    Column("data", Text, nullable=False),  # JSON: options/answer, shape depends on type
    Column("explanation", Text),
    Column("difficulty", Integer, nullable=False, server_default="1"),  # 1-5
    Column("tags", Text, server_default="[]"),
    CheckConstraint(_in("type", QUESTION_TYPES), name="ck_questions_type"),
    CheckConstraint("difficulty BETWEEN 1 AND 5", name="ck_questions_difficulty"),
)

questions_collections = Table(
    "questions_collections",
    metadata,
    *_base_columns(),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    Column("tags", Text, server_default="[]"),
)

questions_to_collections = Table(
    "questions_to_collections",
    metadata,
    Column("question_id", Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False),
    Column("collection_id", Integer, ForeignKey("questions_collections.id", ondelete="CASCADE"), nullable=False),
    Column("score", Integer, nullable=False, server_default="1"),
    Column("order_index", Integer),
    *_timestamps(),
    PrimaryKeyConstraint("question_id", "collection_id"),
)

# ---------------------------------------------------------------------------
# Exams and submissions
# ---------------------------------------------------------------------------

exam_exercises = Table(
    "exam_exercises",
    metadata,
    *_base_columns(),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False),  # author (teacher)
    Column("course_id", Integer, ForeignKey("courses.id"), nullable=False),
    Column("collection_id", Integer, ForeignKey("questions_collections.id"), nullable=False),
    Column("type", String(16), nullable=False),
    Column("title", String(255), nullable=False),
    Column("description", Text, nullable=False),
    Column("tags", Text, server_default="[]"),
    Column("sort_mode", String(16), nullable=False, server_default="fixed"),
    Column("option_sort_mode", String(16), nullable=False, server_default="fixed"),
    Column("question_order", Text, server_default="[]"),  # JSON list of question ids
    Column("question_num", Integer, nullable=False, server_default="1"),
    Column("start_time", String(32), nullable=False),
    Column("end_time", String(32), nullable=False),
    Column("duration", Integer, nullable=False, server_default="0"),  # minutes, 0 = unlimited
    Column("min_duration", Integer, nullable=False, server_default="0"),  # minutes
    Column("allow_retry_num", Integer, nullable=False, server_default="0"),
    Column("passing_score", Integer, nullable=False, server_default="60"),
    CheckConstraint(_in("type", EXAM_TYPES), name="ck_exam_exercises_type"),
    CheckConstraint(_in("sort_mode", SORT_MODES), name="ck_exam_exercises_sort_mode"),
    CheckConstraint(_in("option_sort_mode", SORT_MODES), name="ck_exam_exercises_option_sort_mode"),
)

exam_exercise_submissions = Table(
    "exam_exercise_submissions",
    metadata,
    *_base_columns(),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column("exercise_id", Integer, ForeignKey("exam_exercises.id", ondelete="CASCADE"), nullable=False),
    Column("score", Integer, server_default="0"),
    Column("is_passed", Integer, nullable=False, server_default="0"),  # boolean stored as 0/1
)

answer_submissions = Table(
    "answer_submissions",
    metadata,
    *_base_columns(),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False),
    Column(
        "submission_id",
        Integer,
        ForeignKey("exam_exercise_submissions.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("question_id", Integer, ForeignKey("questions.id"), nullable=False),
    Column("answer", Text, nullable=False),  # JSON, same shape as the question's answer
    Column("is_correct", Integer),
    Column("score", Integer),
)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL and foreign key enforcement on each new SQLite connection.

    SQLite PRAGMAs are per-connection and are not inherited by new
    connections from the pool. foreign_keys is off by default in SQLite, which
    would make every ON DELETE clause above a no-op.
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(db_url: str) -> Engine:
    """Build an engine for db_url and create any missing tables.

    create_all() is idempotent: existing tables are left untouched.
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_sqlite_pragmas)
    metadata.create_all(engine)
    return engine
