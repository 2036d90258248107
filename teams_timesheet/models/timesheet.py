from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from teams_timesheet.database import Base
import enum
import uuid


class TimesheetStatus(enum.IntEnum):
    NONE = 0
    SAVED = 1
    SUBMITTED = 2
    APPROVED = 3
    REJECTED = 4


class TimesheetEntity(Base):
    __tablename__ = "timesheets"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    task_id = Column(Uuid, ForeignKey("tasks.id", ondelete="RESTRICT"), nullable=False, index=True)
    # Snapshot of the task title when the effort was first filled. Not updated
    # when the task is renamed later.
    task_title = Column(String(100), nullable=False)
    user_id = Column(Uuid, nullable=False, index=True)
    timesheet_date = Column(Date, nullable=False, index=True)
    hours = Column(Integer, nullable=False, default=0)
    status = Column(Integer, nullable=False, default=int(TimesheetStatus.NONE), index=True)
    manager_comments = Column(String(100), nullable=True)
    submitted_on = Column(DateTime, nullable=True)
    last_modified_on = Column(DateTime, nullable=True)

    task = relationship("Task", back_populates="timesheets")

    def __repr__(self):
        return f"<TimesheetEntity(user={self.user_id}, task={self.task_title}, date={self.timesheet_date}, hours={self.hours}, status={self.status})>"


# TimesheetEntity.task resolves "Task" by name at mapper configuration
from teams_timesheet.models.project import Task  # noqa: E402,F401
