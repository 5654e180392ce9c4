# Database models
from .base import Base
from .tenant import Tenant, TenantStatus
from .profile import Profile, UserRole
from .academic import Course, SchoolClass
from .student import Student, StudentStatus, Guardian, StudentGuardian, REGISTRATION_CODE_CONSTRAINT
from .kiwify import KiwifyProduct, KiwifyPurchase, StudentCourse
from .event import WebhookEvent, EventStatus

__all__ = [
    "Base",
    "Tenant",
    "TenantStatus",
    "Profile",
    "UserRole",
    "Course",
    "SchoolClass",
    "Student",
    "StudentStatus",
    "Guardian",
    "StudentGuardian",
    "REGISTRATION_CODE_CONSTRAINT",
    "KiwifyProduct",
    "KiwifyPurchase",
    "StudentCourse",
    "WebhookEvent",
    "EventStatus",
]
