"""
HTTP routes exposing the storage contract.

Routes validate payloads and translate storage results into responses;
all persistence goes through the injected ``DbClient``.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from escool.db import DbClient
from escool.dependencies import get_db_client
from escool.dynamo_db import DynamoDbClient
from escool.models import Application, Project, Role, TeamMember, User
from escool.schemas import (
    ApplicationPayload,
    CreateProjectPayload,
    CreateUserPayload,
    HealthResponse,
    JoinTeamPayload,
    UpdateProjectPayload,
    UserResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_project(db: DbClient, project_id: int) -> Project:
    project = db.get_project(project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


@router.get("/health", response_model=HealthResponse)
def health(db: DbClient = Depends(get_db_client)):
    backend = "dynamodb" if isinstance(db, DynamoDbClient) else "memory"
    return HealthResponse(status="ok", backend=backend)


# Projects


@router.get("/projects")
def list_projects(
    category: str | None = Query(default=None),
    stage: str | None = Query(default=None),
    db: DbClient = Depends(get_db_client),
):
    filters = {"category": category, "stage": stage}
    return [project.as_dict() for project in db.list_projects(filters)]


@router.get("/projects/featured")
def list_featured_projects(db: DbClient = Depends(get_db_client)):
    return [project.as_dict() for project in db.list_featured_projects()]


@router.get("/projects/{project_id}")
def get_project(project_id: int, db: DbClient = Depends(get_db_client)):
    return _require_project(db, project_id).as_dict()


@router.post("/projects", status_code=201)
def create_project(
    payload: CreateProjectPayload, db: DbClient = Depends(get_db_client)
):
    """
    Create a project with its open roles and register the creator as founder.
    """
    fields = payload.model_dump(exclude={"roles"})
    project = db.create_project(Project(**fields))
    for role in payload.roles:
        db.create_role(Role(project_id=project.id, **role.model_dump()))
    db.create_team_member(
        TeamMember(project_id=project.id, user_id=payload.created_by, is_founder=True)
    )
    return project.as_dict()


@router.put("/projects/{project_id}")
def update_project(
    project_id: int,
    payload: UpdateProjectPayload,
    db: DbClient = Depends(get_db_client),
):
    _require_project(db, project_id)
    updated = db.update_project(
        project_id, payload.model_dump(exclude_unset=True, exclude_none=True)
    )
    if not updated:
        raise HTTPException(status_code=404, detail="Project not found")
    return updated.as_dict()


@router.get("/projects/{project_id}/roles")
def get_roles(project_id: int, db: DbClient = Depends(get_db_client)):
    return [role.as_dict() for role in db.get_roles(project_id)]


@router.get("/projects/{project_id}/team")
def get_team(project_id: int, db: DbClient = Depends(get_db_client)):
    members = []
    for member in db.get_team_members(project_id):
        user = db.get_user(member.user_id)
        data = member.as_dict()
        data["user"] = (
            {
                "id": user.id,
                "username": user.username,
                "avatar": user.avatar,
                "bio": user.bio,
            }
            if user
            else None
        )
        members.append(data)
    return members


@router.post("/projects/{project_id}/apply", status_code=201)
def apply_to_project(
    project_id: int,
    payload: ApplicationPayload,
    db: DbClient = Depends(get_db_client),
):
    _require_project(db, project_id)
    application = db.create_application(
        Application(project_id=project_id, **payload.model_dump())
    )
    return application.as_dict()


@router.post("/projects/{project_id}/join", status_code=201)
def join_team(
    project_id: int,
    payload: JoinTeamPayload,
    db: DbClient = Depends(get_db_client),
):
    project = _require_project(db, project_id)
    if project.team_size >= project.max_team_size:
        raise HTTPException(
            status_code=400,
            detail="This project has reached its maximum team size",
        )
    if any(m.user_id == payload.user_id for m in db.get_team_members(project_id)):
        raise HTTPException(
            status_code=400, detail="You are already a member of this team"
        )
    member = db.create_team_member(
        TeamMember(
            project_id=project_id, user_id=payload.user_id, role_id=payload.role_id
        )
    )
    db.update_project(project_id, {"team_size": project.team_size + 1})
    logger.info("User %s joined project %s", payload.user_id, project_id)
    return member.as_dict()


# Schools and courses


@router.get("/schools")
def list_schools(db: DbClient = Depends(get_db_client)):
    return [school.as_dict() for school in db.list_schools()]


@router.get("/schools/{school_id}")
def get_school(school_id: int, db: DbClient = Depends(get_db_client)):
    school = db.get_school(school_id)
    if not school:
        raise HTTPException(status_code=404, detail="School not found")
    return school.as_dict()


@router.get("/schools/{school_id}/courses")
def get_school_courses(school_id: int, db: DbClient = Depends(get_db_client)):
    return [course.as_dict() for course in db.get_school_courses(school_id)]


@router.get("/courses/featured")
def featured_courses(
    limit: int = Query(default=10, ge=1, le=100),
    db: DbClient = Depends(get_db_client),
):
    return [course.as_dict() for course in db.list_featured_courses(limit)]


@router.get("/courses/popular")
def popular_courses(
    limit: int = Query(default=10, ge=1, le=100),
    db: DbClient = Depends(get_db_client),
):
    return [course.as_dict() for course in db.list_popular_courses(limit)]


@router.get("/courses/new")
def new_courses(
    limit: int = Query(default=10, ge=1, le=100),
    db: DbClient = Depends(get_db_client),
):
    return [course.as_dict() for course in db.list_new_courses(limit)]


# Users


@router.post("/users", response_model=UserResponse, status_code=201)
def create_user(payload: CreateUserPayload, db: DbClient = Depends(get_db_client)):
    if db.get_user_by_username(payload.username):
        raise HTTPException(status_code=400, detail="Username already exists")
    user = db.create_user(User(**payload.model_dump()))
    return user.public_dict()


@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(user_id: int, db: DbClient = Depends(get_db_client)):
    user = db.get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user.public_dict()
