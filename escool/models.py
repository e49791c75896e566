"""
Entity records and typed filters shared by every storage backend.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, ClassVar, Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Normalise a stored timestamp (ISO string or datetime) to aware UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass
class SocialLinks:
    website: Optional[str] = None
    twitter: Optional[str] = None
    linkedin: Optional[str] = None
    youtube: Optional[str] = None


@dataclass
class Attachment:
    name: str = ""
    url: str = ""
    type: str = ""


@dataclass(kw_only=True)
class Record:
    """Common base for stored entities. ``id`` is assigned on create."""

    id: Optional[int] = None

    # Nested value types keyed by field name, used when decoding.
    _nested: ClassVar[dict[str, type]] = {}
    _nested_lists: ClassVar[dict[str, type]] = {}

    def as_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def field_names(cls) -> frozenset[str]:
        return frozenset(f.name for f in fields(cls))

    @classmethod
    def nullable_fields(cls) -> frozenset[str]:
        """Fields whose default is ``None``; only these may be cleared."""
        return frozenset(f.name for f in fields(cls) if f.default is None)

    @classmethod
    def timestamp_fields(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls) if f.name.endswith("_at"))

    @classmethod
    def from_dict(cls, data: dict) -> "Record":
        """Build a record from plain values, ignoring unknown keys."""
        known = cls.field_names()
        values: dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                continue
            if key.endswith("_at"):
                value = parse_timestamp(value)
            elif key in cls._nested and isinstance(value, dict):
                value = cls._nested[key](**value)
            elif key in cls._nested_lists and isinstance(value, list):
                nested_type = cls._nested_lists[key]
                value = [
                    nested_type(**item) if isinstance(item, dict) else item
                    for item in value
                ]
            values[key] = value
        return cls(**values)


@dataclass(kw_only=True)
class User(Record):
    username: str
    password: str
    email: str
    avatar: Optional[str] = None
    bio: Optional[str] = None
    created_at: Optional[datetime] = None

    def public_dict(self) -> dict:
        """User fields that are safe to return to API callers."""
        data = self.as_dict()
        data.pop("password", None)
        return data


@dataclass(kw_only=True)
class Project(Record):
    name: str
    description: str
    category: str
    stage: str
    team_size: int
    max_team_size: int
    created_by: int
    banner: Optional[str] = None
    website: Optional[str] = None
    problem: Optional[str] = None
    market: Optional[str] = None
    competition: Optional[str] = None
    featured: bool = False
    created_at: Optional[datetime] = None


@dataclass(kw_only=True)
class Role(Record):
    project_id: int
    title: str
    description: Optional[str] = None
    is_open: bool = True


@dataclass(kw_only=True)
class TeamMember(Record):
    project_id: int
    user_id: int
    role_id: Optional[int] = None
    is_founder: bool = False
    joined_at: Optional[datetime] = None


@dataclass(kw_only=True)
class Application(Record):
    project_id: int
    user_id: int
    role_id: Optional[int] = None
    message: Optional[str] = None
    status: str = "pending"
    created_at: Optional[datetime] = None


@dataclass(kw_only=True)
class School(Record):
    name: str
    description: str
    category: str
    categories: list[str] = field(default_factory=list)
    image: Optional[str] = None
    logo: Optional[str] = None
    banner: Optional[str] = None
    established: Optional[str] = None
    location: Optional[str] = None
    featured: bool = False
    course_count: int = 0
    instructors_count: int = 0
    students_count: int = 0
    rating: int = 0
    social_links: Optional[SocialLinks] = None

    _nested: ClassVar[dict[str, type]] = {"social_links": SocialLinks}


@dataclass(kw_only=True)
class Course(Record):
    title: str
    description: str
    school_id: int
    instructor_id: int
    level: str
    category: str
    duration: int = 0  # minutes
    thumbnail: Optional[str] = None
    banner: Optional[str] = None
    intro_video: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    outcomes: list[str] = field(default_factory=list)
    requirements: list[str] = field(default_factory=list)
    price: Optional[int] = None
    discounted_price: Optional[int] = None
    featured: bool = False
    popular: bool = False
    is_new: bool = False
    certificate: bool = False
    language: str = "English"
    rating: int = 0
    rating_count: int = 0
    enrolled_count: int = 0
    lessons_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(kw_only=True)
class Module(Record):
    course_id: int
    title: str
    order: int
    description: Optional[str] = None


@dataclass(kw_only=True)
class Lesson(Record):
    module_id: int
    title: str
    order: int
    duration: int  # minutes
    type: str  # video, article, quiz, project
    description: Optional[str] = None
    content: Optional[str] = None
    video_url: Optional[str] = None
    attachments: list[Attachment] = field(default_factory=list)
    preview: bool = False

    _nested_lists: ClassVar[dict[str, type]] = {"attachments": Attachment}


@dataclass(kw_only=True)
class Instructor(Record):
    name: str
    title: str
    bio: Optional[str] = None
    avatar: Optional[str] = None
    school_id: Optional[int] = None
    user_id: Optional[int] = None
    courses_count: int = 0
    students_count: int = 0
    rating: int = 0
    social_links: Optional[SocialLinks] = None

    _nested: ClassVar[dict[str, type]] = {"social_links": SocialLinks}


# Filters: every field is optional and ``None`` means "do not constrain".


@dataclass
class RecordFilter:
    def as_dict(self) -> dict:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


@dataclass
class UserFilter(RecordFilter):
    username: Optional[str] = None
    email: Optional[str] = None


@dataclass
class ProjectFilter(RecordFilter):
    name: Optional[str] = None
    category: Optional[str] = None
    stage: Optional[str] = None
    created_by: Optional[int] = None
    team_size: Optional[int] = None
    max_team_size: Optional[int] = None
    featured: Optional[bool] = None


@dataclass
class RoleFilter(RecordFilter):
    project_id: Optional[int] = None
    title: Optional[str] = None
    is_open: Optional[bool] = None


@dataclass
class TeamMemberFilter(RecordFilter):
    project_id: Optional[int] = None
    user_id: Optional[int] = None
    role_id: Optional[int] = None
    is_founder: Optional[bool] = None


@dataclass
class ApplicationFilter(RecordFilter):
    project_id: Optional[int] = None
    user_id: Optional[int] = None
    role_id: Optional[int] = None
    status: Optional[str] = None


@dataclass
class SchoolFilter(RecordFilter):
    name: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None
    established: Optional[str] = None
    featured: Optional[bool] = None


@dataclass
class CourseFilter(RecordFilter):
    school_id: Optional[int] = None
    instructor_id: Optional[int] = None
    level: Optional[str] = None
    category: Optional[str] = None
    language: Optional[str] = None
    featured: Optional[bool] = None
    popular: Optional[bool] = None
    is_new: Optional[bool] = None
    certificate: Optional[bool] = None


@dataclass
class ModuleFilter(RecordFilter):
    course_id: Optional[int] = None
    title: Optional[str] = None
    order: Optional[int] = None


@dataclass
class LessonFilter(RecordFilter):
    module_id: Optional[int] = None
    type: Optional[str] = None
    order: Optional[int] = None
    preview: Optional[bool] = None


@dataclass
class InstructorFilter(RecordFilter):
    name: Optional[str] = None
    school_id: Optional[int] = None
    user_id: Optional[int] = None
