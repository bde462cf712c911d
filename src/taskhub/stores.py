"""Persistence for users and tasks on top of a SQLAlchemy session.

Both stores operate on a caller-owned session so that the caller decides
the transaction boundary. Every user-supplied value reaches the database as
a bound parameter.
"""

from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from .models.task import Task
from .models.user import User


class UserStore:
    """Credential store: user records and uniqueness lookups."""

    def __init__(self, session: Session):
        self.session = session

    def exists(self, username: str, email: str) -> bool:
        stmt = (
            select(User.id)
            .where(or_(User.username == username, User.email == email))
            .limit(1)
        )
        return self.session.execute(stmt).first() is not None

    def find_by_email(self, email: str) -> Optional[User]:
        stmt = select(User).where(User.email == email).limit(1)
        return self.session.execute(stmt).scalars().first()

    def add(self, username: str, email: str, password_hash: str, role: str) -> User:
        user = User(username=username, email=email, password_hash=password_hash, role=role)
        self.session.add(user)
        self.session.flush()
        return user


class TaskStore:
    """Task records keyed by owner."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, task_id: int) -> Optional[Task]:
        return self.session.get(Task, task_id)

    def insert(
        self, owner_id: int, title: str, description: Optional[str], status: str
    ) -> Task:
        task = Task(user_id=owner_id, title=title, description=description, status=status)
        self.session.add(task)
        self.session.commit()
        self.session.refresh(task)
        return task

    def query_page(
        self,
        owner_id: Optional[int],
        status: Optional[str],
        offset: int,
        limit: int,
    ) -> Tuple[List[Task], int]:
        """Return one page of tasks newest first plus the unpaged total.

        ``owner_id=None`` spans every owner.
        """
        conditions = []
        if owner_id is not None:
            conditions.append(Task.user_id == owner_id)
        if status is not None:
            conditions.append(Task.status == status)

        total = self.session.execute(
            select(func.count(Task.id)).where(*conditions)
        ).scalar_one()
        rows = (
            self.session.execute(
                select(Task)
                .where(*conditions)
                .order_by(Task.created_at.desc(), Task.id.desc())
                .offset(offset)
                .limit(limit)
            )
            .scalars()
            .all()
        )
        return list(rows), total

    def all(self) -> List[Task]:
        stmt = select(Task).order_by(Task.created_at.desc(), Task.id.desc())
        return list(self.session.execute(stmt).scalars().all())

    def update(self, task: Task, fields: Dict[str, object]) -> Task:
        for name, value in fields.items():
            setattr(task, name, value)
        self.session.commit()
        self.session.refresh(task)
        return task

    def delete(self, task: Task) -> None:
        self.session.delete(task)
        self.session.commit()
