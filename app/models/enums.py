"""
Database Enums

Python Enums stored as named ENUM types.
"""

import enum


class UserRole(str, enum.Enum):
    """User role enumeration."""
    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"


class CourseStatus(str, enum.Enum):
    """Course moderation status."""
    PUBLISHED = "published"
    PENDING = "pending"
    REJECTED = "rejected"


class NotificationType(str, enum.Enum):
    """Notification type enumeration."""
    COURSE_ANNOUNCEMENT = "course_announcement"
    NEW_ENROLLMENT = "new_enrollment"
    NEW_LESSON = "new_lesson"
    COURSE_COMPLETION = "course_completion"
    DIRECT_MESSAGE = "direct_message"


class NotificationPriority(str, enum.Enum):
    """Notification priority enumeration."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CourseCategory(str, enum.Enum):
    """Catalog categories offered when authoring a course."""
    PROGRAMMING = "Programming"
    DESIGN = "Design"
    BUSINESS = "Business"
    MARKETING = "Marketing"
    MUSIC = "Music"
    PHOTOGRAPHY = "Photography"
    HEALTH_FITNESS = "Health & Fitness"
    LANGUAGE = "Language"
    SCIENCE = "Science"
    TECHNOLOGY = "Technology"
    OTHER = "Other"


class CourseDuration(str, enum.Enum):
    """Duration labels shown on a course card."""
    HOURS_1_2 = "1-2 hours"
    HOURS_2_4 = "2-4 hours"
    HOURS_4_6 = "4-6 hours"
    HOURS_6_8 = "6-8 hours"
    DAY_1 = "1 day"
    DAYS_2_3 = "2-3 days"
    WEEK_1 = "1 week"
    WEEKS_2 = "2 weeks"
    WEEKS_3 = "3 weeks"
    MONTH_1 = "1 month"
    MONTHS_2 = "2 months"
    MONTHS_3 = "3 months"
    MONTHS_6 = "6 months"
    YEAR_1 = "1 year"
