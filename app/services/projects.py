"""Projects and saved keywords CRUD, scoped to the owning user."""

from datetime import datetime
from typing import Any

from beanie import PydanticObjectId
from beanie.operators import In
from bson.errors import InvalidId

from app.core.exceptions import BadRequestError, NotFoundError
from app.models.project import Project
from app.models.saved_keyword import KEYWORD_STATUSES, SavedKeyword
from app.models.user import User

PROJECT_NAME_MAX_LENGTH = 100
KEYWORD_SORT_FIELDS = ("created_at", "keyword", "search_volume", "difficulty", "keyword_score", "cpc")


def parse_object_id(value: str, not_found: str = "Not found") -> PydanticObjectId:
    try:
        return PydanticObjectId(value)
    except (InvalidId, TypeError):
        raise NotFoundError(not_found)


def _clean_name(name: Any, required_message: str) -> str:
    if not isinstance(name, str) or not name.strip():
        raise BadRequestError(required_message)
    if len(name) > PROJECT_NAME_MAX_LENGTH:
        raise BadRequestError(f"Project name must be {PROJECT_NAME_MAX_LENGTH} characters or less")
    return name.strip()


def _clean_domain(domain: str | None) -> str | None:
    return (domain or "").strip() or None


async def keyword_count(project_id: PydanticObjectId) -> int:
    return await SavedKeyword.find(SavedKeyword.project.id == project_id).count()


async def list_projects(user_id: PydanticObjectId) -> list[tuple[Project, int]]:
    """Newest first, each with its saved keyword count."""
    projects = await Project.find(Project.user.id == user_id).sort(-Project.created_at, -Project.id).to_list()
    return [(p, await keyword_count(p.id)) for p in projects]


async def create_project(user_id: PydanticObjectId, name: Any, domain: str | None = None) -> Project:
    name = _clean_name(name, "Project name is required")
    user = await User.get(user_id)
    if not user:
        raise NotFoundError("User not found")
    project = Project(user=user, name=name, domain=_clean_domain(domain))
    await project.insert()
    return project


async def get_project(project_id: PydanticObjectId, user_id: PydanticObjectId) -> Project:
    project = await Project.find_one(Project.id == project_id, Project.user.id == user_id)
    if not project:
        raise NotFoundError("Project not found")
    return project


async def update_project(project_id: PydanticObjectId, user_id: PydanticObjectId, **changes) -> Project:
    """Apply the provided name and/or domain; at least one must be given."""
    updates: dict[str, Any] = {}
    if "name" in changes:
        updates["name"] = _clean_name(changes["name"], "Project name cannot be empty")
    if "domain" in changes:
        updates["domain"] = _clean_domain(changes["domain"])
    if not updates:
        raise BadRequestError("No fields to update")
    project = await get_project(project_id, user_id)
    for field, value in updates.items():
        setattr(project, field, value)
    project.updated_at = datetime.utcnow()
    await project.save()
    return project


async def delete_project(project_id: PydanticObjectId, user_id: PydanticObjectId) -> None:
    """Delete the project and its saved keywords."""
    project = await get_project(project_id, user_id)
    await SavedKeyword.find(SavedKeyword.project.id == project.id).delete()
    await project.delete()


async def list_keywords(
    project: Project,
    status: str | None = None,
    sort_field: str = "created_at",
    direction: int = -1,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[SavedKeyword], int]:
    """Return (page, total matching)."""
    query = SavedKeyword.find(SavedKeyword.project.id == project.id)
    if status:
        query = query.find(SavedKeyword.status == status)
    total = await query.count()
    items = await query.sort((sort_field, direction)).skip(offset).limit(limit).to_list()
    return items, total


def _check_status(status: Any) -> None:
    if status not in KEYWORD_STATUSES:
        raise BadRequestError("Invalid status")


async def add_keyword(
    project: Project,
    keyword: Any,
    search_volume: int | None = None,
    difficulty: int | None = None,
    cpc: float | None = None,
    keyword_score: int | None = None,
    data: dict[str, Any] | None = None,
    status: str = "saved",
    notes: str | None = None,
) -> SavedKeyword:
    if not isinstance(keyword, str) or not keyword.strip():
        raise BadRequestError("Keyword is required")
    _check_status(status)
    saved = SavedKeyword(
        project=project,
        keyword=keyword.strip(),
        search_volume=search_volume,
        difficulty=difficulty,
        cpc=cpc,
        keyword_score=keyword_score,
        data=data,
        status=status,
        notes=notes,
    )
    await saved.insert()
    return saved


def _keyword_ids(keyword_ids: Any) -> list[PydanticObjectId]:
    if not keyword_ids or not isinstance(keyword_ids, list):
        raise BadRequestError("keyword_ids array is required")
    ids = []
    for value in keyword_ids:
        try:
            ids.append(PydanticObjectId(value))
        except (InvalidId, TypeError):
            continue
    return ids


async def update_keywords(project: Project, keyword_ids: Any, **changes) -> list[SavedKeyword]:
    """Set status and/or notes on the given keywords of this project; return the updated keywords."""
    ids = _keyword_ids(keyword_ids)
    updates: dict[str, Any] = {}
    if "status" in changes:
        _check_status(changes["status"])
        updates["status"] = changes["status"]
    if "notes" in changes:
        updates["notes"] = changes["notes"]
    if not updates:
        raise BadRequestError("No fields to update")
    updates["updated_at"] = datetime.utcnow()
    query = SavedKeyword.find(SavedKeyword.project.id == project.id, In(SavedKeyword.id, ids))
    await query.update({"$set": updates})
    return await SavedKeyword.find(SavedKeyword.project.id == project.id, In(SavedKeyword.id, ids)).to_list()


async def delete_keywords(project: Project, keyword_ids: Any) -> int:
    ids = _keyword_ids(keyword_ids)
    result = await SavedKeyword.find(SavedKeyword.project.id == project.id, In(SavedKeyword.id, ids)).delete()
    return result.deleted_count if result else 0


def project_out(project: Project, count: int | None = None) -> dict:
    out = {
        "id": str(project.id),
        "name": project.name,
        "domain": project.domain,
        "created_at": project.created_at.isoformat(),
        "updated_at": project.updated_at.isoformat(),
    }
    if count is not None:
        out["keyword_count"] = count
    return out


def keyword_out(k: SavedKeyword) -> dict:
    return {
        "id": str(k.id),
        "project_id": str(k.project.ref.id) if hasattr(k.project, "ref") else str(k.project.id),
        "keyword": k.keyword,
        "search_volume": k.search_volume,
        "difficulty": k.difficulty,
        "cpc": k.cpc,
        "keyword_score": k.keyword_score,
        "data": k.data,
        "status": k.status,
        "notes": k.notes,
        "created_at": k.created_at.isoformat(),
        "updated_at": k.updated_at.isoformat(),
    }
