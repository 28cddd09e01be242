# server/api/tasks.py

from datetime import datetime
from typing import List
from pydantic import BaseModel, ConfigDict
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.auth import get_current_user_id
from core.tasks import TaskRepository
from database import get_db


router = APIRouter(prefix="/tasks", tags=["tasks"])


def get_task_repository(db: Session = Depends(get_db)) -> TaskRepository:
    return TaskRepository(db)


# -------------------------------
# Schemas
# -------------------------------

class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    title: str
    description: str
    completed: bool
    created_at: datetime


class TaskCreate(BaseModel):
    title: str | None = None
    description: str | None = None


class TaskPatch(BaseModel):
    """
    Partial update. Only the fields present in the request body are
    applied; an empty or null title keeps the current one and a null
    description clears it to "".
    """
    title: str | None = None
    description: str | None = None
    completed: bool = False

    def changes(self) -> dict:
        values = self.model_dump(include=self.model_fields_set)
        if "description" in values and values["description"] is None:
            values["description"] = ""
        return values


class MessageResponse(BaseModel):
    message: str


# -------------------------------
# Endpoints
# -------------------------------

@router.get("", response_model=List[TaskOut])
def list_tasks(
    user_id: int = Depends(get_current_user_id),
    repo: TaskRepository = Depends(get_task_repository),
):
    return repo.list(user_id)


@router.post("", response_model=TaskOut, status_code=201)
def create_task(
    req: TaskCreate,
    user_id: int = Depends(get_current_user_id),
    repo: TaskRepository = Depends(get_task_repository),
):
    return repo.create(user_id, req.title, req.description)


@router.put("/{task_id}", response_model=TaskOut)
def update_task(
    task_id: int,
    patch: TaskPatch,
    user_id: int = Depends(get_current_user_id),
    repo: TaskRepository = Depends(get_task_repository),
):
    return repo.update(user_id, task_id, patch.changes())


@router.delete("/{task_id}", response_model=MessageResponse)
def delete_task(
    task_id: int,
    user_id: int = Depends(get_current_user_id),
    repo: TaskRepository = Depends(get_task_repository),
):
    repo.delete(user_id, task_id)
    return {"message": "Task deleted successfully"}
