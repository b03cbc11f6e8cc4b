from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from database import Base
from dates import utcnow
import enum


# Owner of the default categories that get copied to every new user.
# Found by name: its id is whatever the database assigned at seed time.
SYSTEM_USERNAME = "system"


class TaskStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)
    name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)
    avatar = Column(Text, nullable=True)
    birthday = Column(String(32), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    tasks = relationship("Task", back_populates="user", cascade="all, delete-orphan")
    categories = relationship("TaskCategory", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User {self.username}>"


class TaskCategory(Base):
    __tablename__ = "task_categories"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_task_categories_user_name"),)

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    color = Column(String(7), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    user = relationship("User", back_populates="categories")
    tasks = relationship("Task", back_populates="category")

    def __repr__(self):
        return f"<TaskCategory {self.name} {self.color}>"


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(DateTime, nullable=True, index=True)
    status = Column(
        Enum(TaskStatus, name="task_status", native_enum=False, length=20,
             values_callable=_enum_values, validate_strings=True, create_constraint=True),
        nullable=False,
        default=TaskStatus.PENDING,
    )
    priority = Column(
        Enum(TaskPriority, name="task_priority", native_enum=False, length=20,
             values_callable=_enum_values, validate_strings=True, create_constraint=True),
        nullable=False,
        default=TaskPriority.MEDIUM,
    )
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("task_categories.id"), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    user = relationship("User", back_populates="tasks")
    category = relationship("TaskCategory", back_populates="tasks")

    def __repr__(self):
        return f"<Task {self.id} {self.title!r}>"
