# portal_service/app/main.py

import logging
from datetime import datetime, timezone

import uvicorn
from fastapi import Depends, FastAPI, Form, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse
from sqlalchemy import select
from sqlalchemy.orm import Session

from . import sync
from .auth import auth_router, get_current_user
from .config import PORT
from .database import get_db, init_db
from .exceptions import LoginRequired, RemoteError, RemoteUnavailable, SyncFailed, Unauthorized
from .logging_config import configure_logging
from .models import Answer, Question, User
from .moodle_client import MoodleClient
from .rendering import render

logger = logging.getLogger(__name__)

app = FastAPI(title="Student Portal")

app.include_router(auth_router, tags=["auth"])


@app.on_event("startup")
def startup():
    configure_logging()
    init_db()


@app.exception_handler(LoginRequired)
async def login_required_handler(request: Request, exc: LoginRequired):
    logger.debug("Redirecting %s to login: %s", request.url.path, exc)
    return RedirectResponse("/login", status_code=303 if request.method == "POST" else 302)


def get_moodle_factory():
    return MoodleClient


def upstream_failure(message, exc):
    cause = exc.__cause__ if isinstance(exc, SyncFailed) else exc
    logger.error("%s: %s (body: %r)", message, exc, getattr(cause, "body", None))
    return PlainTextResponse(message, status_code=500)


def missing_token():
    return PlainTextResponse("Unauthorized: Moodle token missing.", status_code=401)


def today():
    return datetime.now(timezone.utc).date()


@app.get("/")
def index():
    return RedirectResponse("/login", status_code=302)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/home", response_class=HTMLResponse)
def home(request: Request, current_user: User = Depends(get_current_user)):
    return render(request, "home.html", user=current_user)


@app.get("/qa", response_class=HTMLResponse)
def qa_board(request: Request, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    questions = db.execute(select(Question).order_by(Question.id)).scalars().all()
    return render(request, "qa.html", qa_list=questions, user=current_user)


@app.post("/qa/add-question")
def add_question(question: str = Form(...), current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    new_question = Question(user_id=current_user.id, question_text=question, created_date=today())
    db.add(new_question)
    db.commit()
    return RedirectResponse("/qa", status_code=303)


@app.post("/qa/add-answer/{question_id}")
def add_answer(
    question_id: int,
    answer: str = Form(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    question = db.get(Question, question_id)
    if question is None:
        logger.warning("Answer posted to unknown question %s", question_id)
        return RedirectResponse("/qa", status_code=303)
    question.answers.append(Answer(user_id=current_user.id, answer_text=answer, created_date=today()))
    db.commit()
    return RedirectResponse("/qa", status_code=303)


@app.get("/deadlines")
def sync_deadlines(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    moodle_factory=Depends(get_moodle_factory),
):
    try:
        token = sync.require_token(current_user)
        sync.sync_deadlines(db, current_user, moodle_factory(token))
    except Unauthorized:
        return missing_token()
    except SyncFailed as e:
        return upstream_failure("Error syncing deadlines.", e)
    return RedirectResponse("/deadlines/view", status_code=302)


@app.get("/deadlines/view", response_class=HTMLResponse)
def view_deadlines(request: Request, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    deadlines = sync.list_upcoming_deadlines(db, current_user.id)
    return render(request, "deadlines.html", deadlines=deadlines)


@app.get("/active-courses", response_class=HTMLResponse)
def list_active_courses(
    request: Request,
    current_user: User = Depends(get_current_user),
    moodle_factory=Depends(get_moodle_factory),
):
    try:
        token = sync.require_token(current_user)
        courses = sync.active_courses(moodle_factory(token))
    except Unauthorized:
        return missing_token()
    except (RemoteUnavailable, RemoteError) as e:
        return upstream_failure("Error fetching active courses.", e)
    return render(request, "courses.html", courses=courses)


@app.get("/grades/{course_id}", response_class=HTMLResponse)
def list_grades(
    request: Request,
    course_id: int,
    current_user: User = Depends(get_current_user),
    moodle_factory=Depends(get_moodle_factory),
):
    try:
        token = sync.require_token(current_user)
        grades = sync.course_grades(moodle_factory(token), course_id)
    except Unauthorized:
        return missing_token()
    except (RemoteUnavailable, RemoteError) as e:
        return upstream_failure("Error fetching grades.", e)
    return render(request, "grades.html", grades=grades, course_id=course_id)


def run():
    uvicorn.run("portal_service.app.main:app", host="0.0.0.0", port=PORT)


if __name__ == "__main__":
    run()
