from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from datetime import datetime
from teams_timesheet.database import Base
import uuid


class Project(Base):
    __tablename__ = "projects"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(50), nullable=False)
    client_name = Column(String(50), nullable=False)
    billable_hours = Column(Integer, nullable=False, default=0)
    non_billable_hours = Column(Integer, nullable=False, default=0)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    created_by = Column(Uuid, nullable=False, index=True)
    created_on = Column(DateTime, default=datetime.utcnow, nullable=False)

    tasks = relationship("Task", back_populates="project", order_by="Task.start_date")
    members = relationship("Member", back_populates="project")

    def __repr__(self):
        return f"<Project(title={self.title}, client={self.client_name}, {self.start_date} - {self.end_date})>"


class Member(Base):
    __tablename__ = "members"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="RESTRICT"), nullable=False, index=True)
    user_id = Column(Uuid, nullable=False, index=True)
    is_billable = Column(Boolean, nullable=False, default=False)
    # Soft delete, rows stay so historical timesheets keep their member
    is_removed = Column(Boolean, nullable=False, default=False)

    project = relationship("Project", back_populates="members")

    def __repr__(self):
        return f"<Member(user={self.user_id}, project={self.project_id}, billable={self.is_billable})>"


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id = Column(Uuid, ForeignKey("projects.id", ondelete="RESTRICT"), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    is_removed = Column(Boolean, nullable=False, default=False)
    is_added_by_member = Column(Boolean, nullable=False, default=False)
    # Set only when a member added the task for themselves
    member_mapping_id = Column(Uuid, ForeignKey("members.id", ondelete="RESTRICT"), nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)

    project = relationship("Project", back_populates="tasks")
    member_mapping = relationship("Member")
    timesheets = relationship("TimesheetEntity", back_populates="task")

    def __repr__(self):
        return f"<Task(title={self.title}, project={self.project_id}, removed={self.is_removed})>"


# Task.timesheets resolves "TimesheetEntity" by name at mapper configuration
from teams_timesheet.models.timesheet import TimesheetEntity  # noqa: E402,F401
