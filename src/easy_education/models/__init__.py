"""Database models."""

from easy_education.models.admin_token import AdminToken
from easy_education.models.base import Base
from easy_education.models.course import Course
from easy_education.models.payment import Enrollment, Payment, PaymentStatus
from easy_education.models.push_device import PushDevice
from easy_education.models.site_setting import SiteSetting
from easy_education.models.user import User, UserRole

__all__ = [
    "Base",
    "AdminToken",
    "Course",
    "Enrollment",
    "Payment",
    "PaymentStatus",
    "PushDevice",
    "SiteSetting",
    "User",
    "UserRole",
]
