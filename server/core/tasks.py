# server/core/tasks.py

import logging
from typing import List
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from core.errors import NotFoundOrForbidden, StorageError, ValidationError
from models.task import Task


logger = logging.getLogger(__name__)

PATCHABLE_FIELDS = ("title", "description", "completed")


class TaskRepository:
    """
    CRUD on tasks, always scoped to the owning user.

    Every query filters on ``user_id``; update and delete filter on
    ``id`` and ``user_id`` in the same statement, so a task owned by
    someone else looks exactly like a task that does not exist.
    """

    def __init__(self, db: Session):
        self.db = db

    def _owned(self, user_id: int, task_id: int):
        return self.db.query(Task).filter(Task.id == task_id, Task.user_id == user_id)

    def list(self, user_id: int) -> List[Task]:
        try:
            return (
                self.db.query(Task)
                .filter(Task.user_id == user_id)
                .order_by(Task.created_at.desc(), Task.id.desc())
                .all()
            )
        except SQLAlchemyError as e:
            raise StorageError() from e

    def create(self, user_id: int, title: str | None, description: str | None = None) -> Task:
        if not title:
            raise ValidationError("Title is required")

        task = Task(user_id=user_id, title=title, description=description or "", completed=False)
        try:
            self.db.add(task)
            self.db.commit()
            self.db.refresh(task)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError() from e

        logger.info("User %s created task %s", user_id, task.id)
        return task

    def update(self, user_id: int, task_id: int, changes: dict | None = None) -> Task:
        """
        Applies ``changes`` to the task and returns the updated record.
        Keys outside title/description/completed are ignored, and so is
        an empty title, which keeps the current one. An empty mapping
        leaves the task untouched.
        """
        values = {k: v for k, v in (changes or {}).items() if k in PATCHABLE_FIELDS}
        if not values.get("title"):
            values.pop("title", None)

        try:
            if values:
                matched = self._owned(user_id, task_id).update(values, synchronize_session=False)
                self.db.commit()
                if not matched:
                    raise NotFoundOrForbidden()

            task = self._owned(user_id, task_id).populate_existing().first()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError() from e

        if task is None:
            raise NotFoundOrForbidden()
        logger.info("User %s updated task %s (%s)", user_id, task_id, ", ".join(sorted(values)) or "no changes")
        return task

    def delete(self, user_id: int, task_id: int) -> Task:
        try:
            task = self._owned(user_id, task_id).first()
            if task is None:
                raise NotFoundOrForbidden()
            self.db.expunge(task)

            deleted = self._owned(user_id, task_id).delete(synchronize_session=False)
            if not deleted:
                # Removed by a concurrent request since it was read.
                self.db.rollback()
                raise NotFoundOrForbidden()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise StorageError() from e

        logger.info("User %s deleted task %s", user_id, task_id)
        return task
