from app.core.models.attendance import AttendanceRecord
from app.core.models.task import Task
