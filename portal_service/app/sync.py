# portal_service/app/sync.py
"""
Deadline synchronization and the two read-only Moodle views.

sync_deadlines is an idempotent upsert loop keyed on
(user_id, course_id, assignment_name). Existing rows are never touched, so
upstream renames or date changes after the first sync are not reflected.
"""

import logging
import time
from datetime import datetime, timezone

from pydantic import ValidationError as SchemaError
from sqlalchemy import select
from sqlalchemy.orm import Session

from .exceptions import RemoteError, RemoteUnavailable, SyncFailed, Unauthorized
from .models import Deadline, User
from .schemas import ActiveCourse, DeadlineEntry

logger = logging.getLogger(__name__)


def require_token(user: User) -> str:
    if not user.moodle_token:
        raise Unauthorized("Moodle token missing")
    return user.moodle_token


def flatten_assignments(payload) -> list[DeadlineEntry]:
    """Turn a mod_assign_get_assignments body into one entry per assignment."""
    entries = []
    courses = payload.get("courses") if isinstance(payload, dict) else None
    for course in courses or []:
        for assignment in course.get("assignments") or []:
            entries.append(DeadlineEntry(
                course_id=course["id"],
                course_name=course.get("fullname"),
                assignment_name=assignment["name"],
                due_seconds=assignment.get("duedate") or 0,
            ))
    return entries


def find_deadline(db: Session, user_id: int, course_id: int, assignment_name: str):
    result = db.execute(
        select(Deadline).where(
            Deadline.user_id == user_id,
            Deadline.course_id == course_id,
            Deadline.assignment_name == assignment_name,
        )
    )
    return result.scalars().first()


def sync_deadlines(db: Session, user: User, client) -> int:
    """Insert deadlines Moodle reports that the store does not hold yet.

    Each new row is committed on its own; a failure part way through leaves
    the rows already inserted in place. Returns the number of rows inserted.
    """
    require_token(user)
    try:
        payload = client.get_assignments()
    except (RemoteUnavailable, RemoteError) as e:
        raise SyncFailed(str(e)) from e

    try:
        entries = flatten_assignments(payload)
    except (KeyError, TypeError, AttributeError, SchemaError) as e:
        raise SyncFailed(f"malformed assignment list: {e!r}") from RemoteError(
            "mod_assign_get_assignments: unexpected body shape", body=payload)

    inserted = 0
    for entry in entries:
        if find_deadline(db, user.id, entry.course_id, entry.assignment_name) is not None:
            continue
        db.add(Deadline(
            user_id=user.id,
            course_id=entry.course_id,
            course_name=entry.course_name,
            assignment_name=entry.assignment_name,
            due_date=datetime.fromtimestamp(entry.due_seconds, tz=timezone.utc).replace(tzinfo=None),
        ))
        db.commit()
        inserted += 1
        logger.info("Stored deadline %r for user %s (course %s)",
                    entry.assignment_name, user.id, entry.course_id)

    logger.info("Deadline sync for user %s done, %d new", user.id, inserted)
    return inserted


def list_upcoming_deadlines(db: Session, user_id: int, now: datetime | None = None):
    if now is None:
        now = datetime.now(timezone.utc).replace(tzinfo=None)
    result = db.execute(
        select(Deadline)
        .where(Deadline.user_id == user_id, Deadline.due_date >= now)
        .order_by(Deadline.due_date.asc())
    )
    return result.scalars().all()


def resolve_moodle_user_id(client):
    info = client.get_site_info()
    uid = info.get("userid") if isinstance(info, dict) else None
    if uid is None:
        raise RemoteError("core_webservice_get_site_info: no userid in response", body=info)
    return uid


def active_courses(client, now: int | None = None) -> list[ActiveCourse]:
    if now is None:
        now = int(time.time())
    uid = resolve_moodle_user_id(client)
    courses = client.get_users_courses(uid) or []
    try:
        return [
            ActiveCourse(id=course["id"], fullname=course["fullname"])
            for course in courses
            if course.get("enddate", 0) >= now
        ]
    except (KeyError, TypeError, AttributeError, SchemaError) as e:
        raise RemoteError(
            f"core_enrol_get_users_courses: unexpected body shape ({e!r})", body=courses) from e


def extract_grade_items(payload) -> list:
    # Each missing level means "no grades", never an error
    if not isinstance(payload, dict):
        return []
    usergrades = payload.get("usergrades")
    if not isinstance(usergrades, list) or not usergrades:
        return []
    first = usergrades[0]
    if not isinstance(first, dict):
        return []
    return first.get("gradeitems") or []


def course_grades(client, course_id) -> list:
    uid = resolve_moodle_user_id(client)
    payload = client.get_grade_items(uid, course_id)
    logger.debug("Grade report for course %s: %s", course_id, payload)
    return extract_grade_items(payload)
