"""
Storage contract shared by the in-memory and DynamoDB backends.

``DbClient`` is the interface callers depend on. ``BaseDbClient`` implements
every contract operation on top of a handful of storage primitives, so the
two backends only differ in how they get, scan, query, put, update and
delete records.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Protocol, Union

from escool.errors import ValidationFailure
from escool.models import (
    Application,
    ApplicationFilter,
    Course,
    CourseFilter,
    Instructor,
    InstructorFilter,
    Lesson,
    LessonFilter,
    Module,
    ModuleFilter,
    Project,
    ProjectFilter,
    Record,
    RecordFilter,
    Role,
    RoleFilter,
    School,
    SchoolFilter,
    TeamMember,
    TeamMemberFilter,
    User,
    UserFilter,
    utcnow,
)

Filters = Union[RecordFilter, Mapping[str, Any], None]

FEATURED = "featured"


@dataclass(frozen=True, eq=False)
class EntityKind:
    """Static description of one entity family."""

    name: str
    record_cls: type
    filter_cls: type
    # field name -> secondary index name
    indexes: dict[str, str] = field(default_factory=dict)


USERS = EntityKind("users", User, UserFilter, {"username": "UsernameIndex"})
PROJECTS = EntityKind(
    "projects",
    Project,
    ProjectFilter,
    {FEATURED: "FeaturedIndex", "created_by": "CreatedByIndex"},
)
ROLES = EntityKind("roles", Role, RoleFilter, {"project_id": "ProjectIdIndex"})
TEAM_MEMBERS = EntityKind(
    "team_members",
    TeamMember,
    TeamMemberFilter,
    {"project_id": "ProjectIdIndex", "user_id": "UserIdIndex"},
)
APPLICATIONS = EntityKind(
    "applications",
    Application,
    ApplicationFilter,
    {"project_id": "ProjectIdIndex", "user_id": "UserIdIndex"},
)
SCHOOLS = EntityKind("schools", School, SchoolFilter, {FEATURED: "FeaturedIndex"})
COURSES = EntityKind(
    "courses",
    Course,
    CourseFilter,
    {FEATURED: "FeaturedIndex", "school_id": "SchoolIdIndex"},
)
MODULES = EntityKind("modules", Module, ModuleFilter, {"course_id": "CourseIdIndex"})
LESSONS = EntityKind("lessons", Lesson, LessonFilter, {"module_id": "ModuleIdIndex"})
INSTRUCTORS = EntityKind(
    "instructors", Instructor, InstructorFilter, {"school_id": "SchoolIdIndex"}
)

ENTITY_KINDS: tuple[EntityKind, ...] = (
    USERS,
    PROJECTS,
    ROLES,
    TEAM_MEMBERS,
    APPLICATIONS,
    SCHOOLS,
    COURSES,
    MODULES,
    LESSONS,
    INSTRUCTORS,
)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def normalize_filters(kind: EntityKind, filters: Filters) -> dict[str, Any]:
    """Turn a typed filter or mapping into a ``{field: value}`` dict."""
    if filters is None:
        return {}
    if isinstance(filters, RecordFilter):
        if not isinstance(filters, kind.filter_cls):
            raise ValidationFailure(
                f"{type(filters).__name__} cannot filter {kind.name}"
            )
        return filters.as_dict()
    unknown = set(filters) - kind.record_cls.field_names()
    if unknown:
        raise ValidationFailure(
            f"Unknown {kind.name} filter field(s): {', '.join(sorted(unknown))}"
        )
    return {key: value for key, value in filters.items() if value is not None}


def clean_patch(kind: EntityKind, patch: Mapping[str, Any]) -> dict[str, Any]:
    """Validate an update patch and drop any attempt to change the id."""
    unknown = set(patch) - kind.record_cls.field_names()
    if unknown:
        raise ValidationFailure(
            f"Unknown {kind.name} field(s): {', '.join(sorted(unknown))}"
        )
    changes = {key: value for key, value in patch.items() if key != "id"}
    not_nullable = {
        key
        for key, value in changes.items()
        if value is None and key not in kind.record_cls.nullable_fields()
    }
    if not_nullable:
        raise ValidationFailure(
            f"{kind.name} field(s) cannot be null: {', '.join(sorted(not_nullable))}"
        )
    return changes


def prepare_new(
    kind: EntityKind, draft: Record, record_id: int, now: datetime
) -> Record:
    """Copy a caller's draft, assign the id and stamp creation timestamps."""
    if not isinstance(draft, kind.record_cls):
        raise ValidationFailure(
            f"Expected {kind.record_cls.__name__}, got {type(draft).__name__}"
        )
    record = kind.record_cls.from_dict(draft.as_dict())
    stamps = {name: now for name in kind.record_cls.timestamp_fields()}
    return replace(record, id=record_id, **stamps)


def matches(record: Record, filters: Mapping[str, Any]) -> bool:
    return all(getattr(record, key) == value for key, value in filters.items())


def _by_id(records: list) -> list:
    return sorted(records, key=lambda r: r.id)


def _by_order(records: list) -> list:
    return sorted(records, key=lambda r: (r.order, r.id))


class DbClient(Protocol):
    """Interface for entity storage."""

    # Users
    def get_user(self, user_id: int) -> Optional[User]:
        ...

    def get_user_by_username(self, username: str) -> Optional[User]:
        ...

    def list_users(self, filters: Filters = None) -> list[User]:
        ...

    def create_user(self, user: User) -> User:
        ...

    def update_user(self, user_id: int, patch: Mapping[str, Any]) -> Optional[User]:
        ...

    # Projects
    def get_project(self, project_id: int) -> Optional[Project]:
        ...

    def list_projects(self, filters: Filters = None) -> list[Project]:
        ...

    def list_featured_projects(self) -> list[Project]:
        ...

    def get_user_projects(self, user_id: int) -> list[Project]:
        ...

    def create_project(self, project: Project) -> Project:
        ...

    def update_project(
        self, project_id: int, patch: Mapping[str, Any]
    ) -> Optional[Project]:
        ...

    def delete_project(self, project_id: int) -> bool:
        ...

    # Roles
    def get_role(self, role_id: int) -> Optional[Role]:
        ...

    def get_roles(self, project_id: int) -> list[Role]:
        ...

    def list_roles(self, filters: Filters = None) -> list[Role]:
        ...

    def create_role(self, role: Role) -> Role:
        ...

    def update_role(self, role_id: int, patch: Mapping[str, Any]) -> Optional[Role]:
        ...

    def delete_role(self, role_id: int) -> bool:
        ...

    # Team members
    def get_team_member(self, member_id: int) -> Optional[TeamMember]:
        ...

    def get_team_members(self, project_id: int) -> list[TeamMember]:
        ...

    def get_user_team_memberships(self, user_id: int) -> list[TeamMember]:
        ...

    def list_team_members(self, filters: Filters = None) -> list[TeamMember]:
        ...

    def create_team_member(self, member: TeamMember) -> TeamMember:
        ...

    def update_team_member(
        self, member_id: int, patch: Mapping[str, Any]
    ) -> Optional[TeamMember]:
        ...

    def remove_team_member(self, member_id: int) -> bool:
        ...

    # Applications
    def get_application(self, application_id: int) -> Optional[Application]:
        ...

    def get_applications(self, project_id: int) -> list[Application]:
        ...

    def get_user_applications(self, user_id: int) -> list[Application]:
        ...

    def list_applications(self, filters: Filters = None) -> list[Application]:
        ...

    def create_application(self, application: Application) -> Application:
        ...

    def update_application(
        self, application_id: int, patch: Mapping[str, Any]
    ) -> Optional[Application]:
        ...

    def update_application_status(
        self, application_id: int, status: str
    ) -> Optional[Application]:
        ...

    # Schools
    def get_school(self, school_id: int) -> Optional[School]:
        ...

    def list_schools(self, filters: Filters = None) -> list[School]:
        ...

    def list_featured_schools(self) -> list[School]:
        ...

    def create_school(self, school: School) -> School:
        ...

    def update_school(
        self, school_id: int, patch: Mapping[str, Any]
    ) -> Optional[School]:
        ...

    def delete_school(self, school_id: int) -> bool:
        ...

    # Courses
    def get_course(self, course_id: int) -> Optional[Course]:
        ...

    def list_courses(self, filters: Filters = None) -> list[Course]:
        ...

    def list_featured_courses(self, limit: Optional[int] = None) -> list[Course]:
        ...

    def list_popular_courses(self, limit: int = 10) -> list[Course]:
        ...

    def list_new_courses(self, limit: int = 10) -> list[Course]:
        ...

    def get_school_courses(self, school_id: int) -> list[Course]:
        ...

    def get_instructor_courses(self, instructor_id: int) -> list[Course]:
        ...

    def create_course(self, course: Course) -> Course:
        ...

    def update_course(
        self, course_id: int, patch: Mapping[str, Any]
    ) -> Optional[Course]:
        ...

    def delete_course(self, course_id: int) -> bool:
        ...

    # Modules
    def get_module(self, module_id: int) -> Optional[Module]:
        ...

    def get_modules(self, course_id: int) -> list[Module]:
        ...

    def list_modules(self, filters: Filters = None) -> list[Module]:
        ...

    def create_module(self, module: Module) -> Module:
        ...

    def update_module(
        self, module_id: int, patch: Mapping[str, Any]
    ) -> Optional[Module]:
        ...

    def delete_module(self, module_id: int) -> bool:
        ...

    # Lessons
    def get_lesson(self, lesson_id: int) -> Optional[Lesson]:
        ...

    def get_lessons(self, module_id: int) -> list[Lesson]:
        ...

    def list_lessons(self, filters: Filters = None) -> list[Lesson]:
        ...

    def create_lesson(self, lesson: Lesson) -> Lesson:
        ...

    def update_lesson(
        self, lesson_id: int, patch: Mapping[str, Any]
    ) -> Optional[Lesson]:
        ...

    def delete_lesson(self, lesson_id: int) -> bool:
        ...

    # Instructors
    def get_instructor(self, instructor_id: int) -> Optional[Instructor]:
        ...

    def list_instructors(self, filters: Filters = None) -> list[Instructor]:
        ...

    def get_school_instructors(self, school_id: int) -> list[Instructor]:
        ...

    def create_instructor(self, instructor: Instructor) -> Instructor:
        ...

    def update_instructor(
        self, instructor_id: int, patch: Mapping[str, Any]
    ) -> Optional[Instructor]:
        ...

    def delete_instructor(self, instructor_id: int) -> bool:
        ...


class BaseDbClient(ABC):
    """
    Implements the ``DbClient`` operations over backend primitives.

    Defaults, patch validation, ordering and limits live here so that both
    backends return identical logical results for identical inputs.
    """

    @abstractmethod
    def _get(self, kind: EntityKind, record_id: int) -> Optional[Record]:
        ...

    @abstractmethod
    def _scan(self, kind: EntityKind, filters: Mapping[str, Any]) -> list:
        ...

    def _query(self, kind: EntityKind, field_name: str, value: Any) -> list:
        """Lookup by a field with a known access pattern."""
        return self._scan(kind, {field_name: value})

    @abstractmethod
    def _next_id(self, kind: EntityKind) -> int:
        ...

    @abstractmethod
    def _put(self, kind: EntityKind, record: Record) -> None:
        ...

    @abstractmethod
    def _update(
        self, kind: EntityKind, record_id: int, changes: Mapping[str, Any]
    ) -> Optional[Record]:
        ...

    @abstractmethod
    def _delete(self, kind: EntityKind, record_id: int) -> bool:
        ...

    # Generic operations

    def _list(self, kind: EntityKind, filters: Filters = None) -> list:
        return _by_id(self._scan(kind, normalize_filters(kind, filters)))

    def _create(self, kind: EntityKind, draft: Record) -> Record:
        record = prepare_new(kind, draft, self._next_id(kind), utcnow())
        self._put(kind, record)
        return record

    def _patch(
        self, kind: EntityKind, record_id: int, patch: Mapping[str, Any]
    ) -> Optional[Record]:
        changes = clean_patch(kind, patch)
        if not changes:
            return self._get(kind, record_id)
        if "updated_at" in kind.record_cls.field_names():
            changes["updated_at"] = utcnow()
        return self._update(kind, record_id, changes)

    # Users

    def get_user(self, user_id: int) -> Optional[User]:
        return self._get(USERS, user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        users = _by_id(self._query(USERS, "username", username))
        return users[0] if users else None

    def list_users(self, filters: Filters = None) -> list[User]:
        return self._list(USERS, filters)

    def create_user(self, user: User) -> User:
        return self._create(USERS, user)

    def update_user(self, user_id: int, patch: Mapping[str, Any]) -> Optional[User]:
        return self._patch(USERS, user_id, patch)

    # Projects

    def get_project(self, project_id: int) -> Optional[Project]:
        return self._get(PROJECTS, project_id)

    def list_projects(self, filters: Filters = None) -> list[Project]:
        return self._list(PROJECTS, filters)

    def list_featured_projects(self) -> list[Project]:
        return _by_id(self._query(PROJECTS, FEATURED, True))

    def get_user_projects(self, user_id: int) -> list[Project]:
        return _by_id(self._query(PROJECTS, "created_by", user_id))

    def create_project(self, project: Project) -> Project:
        return self._create(PROJECTS, project)

    def update_project(
        self, project_id: int, patch: Mapping[str, Any]
    ) -> Optional[Project]:
        return self._patch(PROJECTS, project_id, patch)

    def delete_project(self, project_id: int) -> bool:
        return self._delete(PROJECTS, project_id)

    # Roles

    def get_role(self, role_id: int) -> Optional[Role]:
        return self._get(ROLES, role_id)

    def get_roles(self, project_id: int) -> list[Role]:
        return _by_id(self._query(ROLES, "project_id", project_id))

    def list_roles(self, filters: Filters = None) -> list[Role]:
        return self._list(ROLES, filters)

    def create_role(self, role: Role) -> Role:
        return self._create(ROLES, role)

    def update_role(self, role_id: int, patch: Mapping[str, Any]) -> Optional[Role]:
        return self._patch(ROLES, role_id, patch)

    def delete_role(self, role_id: int) -> bool:
        return self._delete(ROLES, role_id)

    # Team members

    def get_team_member(self, member_id: int) -> Optional[TeamMember]:
        return self._get(TEAM_MEMBERS, member_id)

    def get_team_members(self, project_id: int) -> list[TeamMember]:
        return _by_id(self._query(TEAM_MEMBERS, "project_id", project_id))

    def get_user_team_memberships(self, user_id: int) -> list[TeamMember]:
        return _by_id(self._query(TEAM_MEMBERS, "user_id", user_id))

    def list_team_members(self, filters: Filters = None) -> list[TeamMember]:
        return self._list(TEAM_MEMBERS, filters)

    def create_team_member(self, member: TeamMember) -> TeamMember:
        return self._create(TEAM_MEMBERS, member)

    def update_team_member(
        self, member_id: int, patch: Mapping[str, Any]
    ) -> Optional[TeamMember]:
        return self._patch(TEAM_MEMBERS, member_id, patch)

    def remove_team_member(self, member_id: int) -> bool:
        return self._delete(TEAM_MEMBERS, member_id)

    # Applications

    def get_application(self, application_id: int) -> Optional[Application]:
        return self._get(APPLICATIONS, application_id)

    def get_applications(self, project_id: int) -> list[Application]:
        return _by_id(self._query(APPLICATIONS, "project_id", project_id))

    def get_user_applications(self, user_id: int) -> list[Application]:
        return _by_id(self._query(APPLICATIONS, "user_id", user_id))

    def list_applications(self, filters: Filters = None) -> list[Application]:
        return self._list(APPLICATIONS, filters)

    def create_application(self, application: Application) -> Application:
        return self._create(APPLICATIONS, application)

    def update_application(
        self, application_id: int, patch: Mapping[str, Any]
    ) -> Optional[Application]:
        return self._patch(APPLICATIONS, application_id, patch)

    def update_application_status(
        self, application_id: int, status: str
    ) -> Optional[Application]:
        return self._patch(APPLICATIONS, application_id, {"status": status})

    # Schools

    def get_school(self, school_id: int) -> Optional[School]:
        return self._get(SCHOOLS, school_id)

    def list_schools(self, filters: Filters = None) -> list[School]:
        return self._list(SCHOOLS, filters)

    def list_featured_schools(self) -> list[School]:
        return _by_id(self._query(SCHOOLS, FEATURED, True))

    def create_school(self, school: School) -> School:
        return self._create(SCHOOLS, school)

    def update_school(
        self, school_id: int, patch: Mapping[str, Any]
    ) -> Optional[School]:
        return self._patch(SCHOOLS, school_id, patch)

    def delete_school(self, school_id: int) -> bool:
        return self._delete(SCHOOLS, school_id)

    # Courses

    def get_course(self, course_id: int) -> Optional[Course]:
        return self._get(COURSES, course_id)

    def list_courses(self, filters: Filters = None) -> list[Course]:
        return self._list(COURSES, filters)

    def list_featured_courses(self, limit: Optional[int] = None) -> list[Course]:
        courses = _by_id(self._query(COURSES, FEATURED, True))
        return courses if limit is None else courses[:limit]

    def list_popular_courses(self, limit: int = 10) -> list[Course]:
        courses = self._scan(COURSES, {})
        courses.sort(key=lambda c: (-(c.enrolled_count or 0), c.id))
        return courses[:limit]

    def list_new_courses(self, limit: int = 10) -> list[Course]:
        courses = self._scan(COURSES, {})
        courses.sort(key=lambda c: (c.created_at or _EPOCH, c.id), reverse=True)
        return courses[:limit]

    def get_school_courses(self, school_id: int) -> list[Course]:
        return _by_id(self._query(COURSES, "school_id", school_id))

    def get_instructor_courses(self, instructor_id: int) -> list[Course]:
        return self._list(COURSES, {"instructor_id": instructor_id})

    def create_course(self, course: Course) -> Course:
        return self._create(COURSES, course)

    def update_course(
        self, course_id: int, patch: Mapping[str, Any]
    ) -> Optional[Course]:
        return self._patch(COURSES, course_id, patch)

    def delete_course(self, course_id: int) -> bool:
        return self._delete(COURSES, course_id)

    # Modules

    def get_module(self, module_id: int) -> Optional[Module]:
        return self._get(MODULES, module_id)

    def get_modules(self, course_id: int) -> list[Module]:
        return _by_order(self._query(MODULES, "course_id", course_id))

    def list_modules(self, filters: Filters = None) -> list[Module]:
        return self._list(MODULES, filters)

    def create_module(self, module: Module) -> Module:
        return self._create(MODULES, module)

    def update_module(
        self, module_id: int, patch: Mapping[str, Any]
    ) -> Optional[Module]:
        return self._patch(MODULES, module_id, patch)

    def delete_module(self, module_id: int) -> bool:
        return self._delete(MODULES, module_id)

    # Lessons

    def get_lesson(self, lesson_id: int) -> Optional[Lesson]:
        return self._get(LESSONS, lesson_id)

    def get_lessons(self, module_id: int) -> list[Lesson]:
        return _by_order(self._query(LESSONS, "module_id", module_id))

    def list_lessons(self, filters: Filters = None) -> list[Lesson]:
        return self._list(LESSONS, filters)

    def create_lesson(self, lesson: Lesson) -> Lesson:
        return self._create(LESSONS, lesson)

    def update_lesson(
        self, lesson_id: int, patch: Mapping[str, Any]
    ) -> Optional[Lesson]:
        return self._patch(LESSONS, lesson_id, patch)

    def delete_lesson(self, lesson_id: int) -> bool:
        return self._delete(LESSONS, lesson_id)

    # Instructors

    def get_instructor(self, instructor_id: int) -> Optional[Instructor]:
        return self._get(INSTRUCTORS, instructor_id)

    def list_instructors(self, filters: Filters = None) -> list[Instructor]:
        return self._list(INSTRUCTORS, filters)

    def get_school_instructors(self, school_id: int) -> list[Instructor]:
        return _by_id(self._query(INSTRUCTORS, "school_id", school_id))

    def create_instructor(self, instructor: Instructor) -> Instructor:
        return self._create(INSTRUCTORS, instructor)

    def update_instructor(
        self, instructor_id: int, patch: Mapping[str, Any]
    ) -> Optional[Instructor]:
        return self._patch(INSTRUCTORS, instructor_id, patch)

    def delete_instructor(self, instructor_id: int) -> bool:
        return self._delete(INSTRUCTORS, instructor_id)
