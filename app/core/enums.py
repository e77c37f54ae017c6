from enum import Enum


class EmployeeRole(str, Enum):
    EMPLOYEE = "employee"
    ADMIN = "admin"


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    HALF_DAY = "half-day"
    CASUAL_LEAVE = "casual leave"
    SICK_LEAVE = "sick leave"
    PAID_LEAVE = "paid leave"


ATTENDANCE_STATUSES = tuple(s.value for s in AttendanceStatus)
# Only these statuses can transition into checked-out
CHECKOUT_ALLOWED_STATUSES = (AttendanceStatus.PRESENT.value, AttendanceStatus.HALF_DAY.value)


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
