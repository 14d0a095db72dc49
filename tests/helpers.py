"""Shared fixtures: an in-memory database and a few seeding shortcuts."""
from typing import Iterable
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app import models  # noqa: F401
from app.core.database import Base
from app.models.user import User, UserRole
from app.models.group import Group, GroupStudent, GroupTeacher, GroupStudentStatus


async def make_session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False
    )
    return engine, factory


async def create_user(db: AsyncSession, name: str, role: UserRole = UserRole.STUDENT) -> User:
    user = User(name=name, email=f"{name.lower().replace(' ', '.')}.{uuid4().hex[:6]}@example.com", role=role)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def create_group(
    db: AsyncSession,
    name: str,
    students: Iterable[User] = (),
    teachers: Iterable[User] = (),
    inactive_students: Iterable[User] = ()
) -> Group:
    group = Group(name=name)
    db.add(group)
    await db.flush()

    for student in students:
        db.add(GroupStudent(group_id=group.id, user_id=student.id, status=GroupStudentStatus.ACTIVE))
    for student in inactive_students:
        db.add(GroupStudent(group_id=group.id, user_id=student.id, status=GroupStudentStatus.INACTIVE))
    for teacher in teachers:
        db.add(GroupTeacher(group_id=group.id, user_id=teacher.id))

    await db.commit()
    await db.refresh(group)
    return group
