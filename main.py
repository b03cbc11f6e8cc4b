from fastapi import FastAPI, Depends, HTTPException, Path, Query, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from typing import List, Optional
import logging
import random

import config
import schemas
import shaping
import storage
from auth import (
    authenticate_user,
    clear_session_cookie,
    get_current_user,
    get_password_hash,
    start_session,
)
from database import get_db
from dates import parse_iso_datetime, utcnow
from models import Task, TaskPriority, TaskStatus, User

logger = logging.getLogger(__name__)

STATUS_FILTER = r"^(all|pending|in-progress|completed)$"
PRIORITY_FILTER = r"^(all|low|medium|high)$"
SORT_OPTIONS = r"^(dueDate|priority|title)$"

# Initialize app
app = FastAPI(title="Taskboard")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error responses

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")),
            "message": err.get("msg", ""),
            "type": err.get("type", ""),
        }
        for err in exc.errors()
    ]
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": "Invalid data", "errors": errors})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": "Internal server error"})


def invalid_field(field: str, message: str) -> RequestValidationError:
    return RequestValidationError([{"loc": ("body", field), "msg": message, "type": "value_error"}])


def random_color() -> str:
    return "#{:06x}".format(random.randint(0, 0xFFFFFF))


def get_owned_task(db: Session, task_id: int, user: User) -> Task:
    # existence first: the owner is only known once the row is loaded
    task = storage.get_task(db, task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    if task.user_id != user.id:
        raise HTTPException(status_code=403, detail="Forbidden")
    return task


def check_category(db: Session, category_id: Optional[int], user: User) -> None:
    if category_id is None:
        return
    category = storage.get_task_category(db, category_id)
    if category is None or category.user_id != user.id:
        raise invalid_field("categoryId", "Unknown category")


# Auth

@app.post("/api/register", response_model=schemas.UserOut, status_code=201)
def register(user: schemas.UserCreate, response: Response, db: Session = Depends(get_db)):
    existing = storage.get_user_by_username(db, user.username)
    if existing:
        raise HTTPException(status_code=400, detail="Username already exists")

    fields = user.model_dump()
    fields["password"] = get_password_hash(user.password)
    try:
        new_user = storage.create_user(db, fields)
    except IntegrityError:
        # lost a race with a concurrent registration of the same name
        raise HTTPException(status_code=400, detail="Username already exists")

    start_session(response, new_user)
    return new_user


@app.post("/api/login", response_model=schemas.Token)
def login(response: Response, form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    user = authenticate_user(db, form_data.username, form_data.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid credentials")

    access_token = start_session(response, user)
    logger.info("User id=%s logged in", user.id)
    return {"access_token": access_token, "token_type": "bearer"}


@app.post("/api/logout")
def logout(response: Response):
    clear_session_cookie(response)
    return {"message": "Logged out"}


@app.get("/api/user", response_model=schemas.UserOut)
def current_user(user: User = Depends(get_current_user)):
    return user


@app.put("/api/user/profile", response_model=schemas.UserOut)
def update_profile(
    profile: schemas.UserProfileUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    updated = storage.update_user(db, user.id, profile.model_dump(exclude_unset=True))
    if not updated:
        raise HTTPException(status_code=404, detail="User not found")
    return updated


# Tasks

@app.get("/api/tasks", response_model=List[schemas.TaskOut])
def list_tasks(
    status_filter: str = Query("all", alias="status", pattern=STATUS_FILTER),
    priority: str = Query("all", pattern=PRIORITY_FILTER),
    search: str = Query(""),
    sort: Optional[str] = Query(None, pattern=SORT_OPTIONS),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    tasks = storage.get_user_tasks(db, user.id)
    tasks = shaping.filter_tasks(tasks, status=status_filter, priority=priority, search=search)
    if sort:
        tasks = shaping.sort_tasks(tasks, sort)
    return tasks


@app.post("/api/tasks", response_model=schemas.TaskOut, status_code=201)
def create_task(task: schemas.TaskCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    check_category(db, task.category_id, user)
    # owner always comes from the session, never from the body
    return storage.create_task(db, user.id, task.model_dump())


@app.get("/api/tasks/date/{day}", response_model=List[schemas.TaskOut])
def tasks_for_date(day: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    try:
        parsed = parse_iso_datetime(day)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format")
    return storage.get_tasks_by_date(db, user.id, parsed.date())


@app.get("/api/tasks/status/{task_status}", response_model=List[schemas.TaskOut])
def tasks_for_status(task_status: TaskStatus, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return storage.get_tasks_by_status(db, user.id, task_status)


@app.get("/api/tasks/priority/{priority}", response_model=List[schemas.TaskOut])
def tasks_for_priority(priority: TaskPriority, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return storage.get_tasks_by_priority(db, user.id, priority)


@app.get("/api/tasks/{task_id}", response_model=schemas.TaskOut)
def get_task(task_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return get_owned_task(db, task_id, user)


@app.put("/api/tasks/{task_id}", response_model=schemas.TaskOut)
def update_task(
    task_id: int,
    task: schemas.TaskUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    get_owned_task(db, task_id, user)

    fields = task.model_dump(exclude_unset=True)
    check_category(db, fields.get("category_id"), user)

    updated = storage.update_task(db, task_id, fields)
    if not updated:
        raise HTTPException(status_code=404, detail="Task not found")
    return updated


@app.delete("/api/tasks/{task_id}", status_code=204)
def delete_task(task_id: int, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    get_owned_task(db, task_id, user)
    storage.delete_task(db, task_id)
    return Response(status_code=204)


# Calendar

@app.get("/api/calendar/{year}/{month}", response_model=schemas.CalendarMonth)
def calendar_month(
    year: int = Path(ge=1, le=9999),
    month: int = Path(ge=1, le=12),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    tasks = storage.get_user_tasks(db, user.id)
    today = utcnow().date()
    cells = [
        {
            "date": day,
            "day": day.day if day else None,
            "is_today": day == today,
            "tasks": day_tasks,
        }
        for day, day_tasks in shaping.bucket_by_day(tasks, shaping.calendar_grid(year, month))
    ]
    return {"year": year, "month": month, "cells": cells}


# Analytics

@app.get("/api/analytics/completion", response_model=schemas.CompletionStats)
def completion_stats(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return storage.get_task_completion_stats(db, user.id)


@app.get("/api/analytics/categories", response_model=List[schemas.CategoryCount])
def category_stats(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return storage.get_tasks_by_category(db, user.id)


@app.get("/api/analytics/weekly", response_model=List[schemas.WeeklyCount])
def weekly_activity(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return storage.get_weekly_activity(db, user.id)


@app.get("/api/analytics/productivity", response_model=schemas.Productivity)
def productivity(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    score = shaping.productivity_score(storage.get_task_completion_stats(db, user.id))
    return {"score": score, "rating": shaping.productivity_rating(score)}


# Categories

@app.get("/api/categories", response_model=List[schemas.CategoryOut])
def list_categories(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return storage.get_task_categories(db, user.id)


@app.post("/api/categories", response_model=schemas.CategoryOut, status_code=201)
def create_category(
    category: schemas.CategoryCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if storage.get_task_category_by_name(db, user.id, category.name):
        raise HTTPException(status_code=400, detail="Category already exists")

    try:
        return storage.create_task_category(db, user.id, category.name, category.color or random_color())
    except IntegrityError:
        raise HTTPException(status_code=400, detail="Category already exists")


def run():
    import uvicorn
    from logging_setup import setup_logging

    setup_logging()
    logger.info("Starting Taskboard on %s:%s", config.HOST, config.PORT)
    uvicorn.run(app, host=config.HOST, port=config.PORT, log_config=None)


if __name__ == "__main__":
    run()
