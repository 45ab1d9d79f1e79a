from typing import Any

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from app.core.pagination import paginate, sort_spec
from app.deps import get_current_user
from app.models.user import User
from app.services import projects as projects_service
from app.services.projects import KEYWORD_SORT_FIELDS, keyword_out, parse_object_id, project_out

router = APIRouter()


class ProjectCreate(BaseModel):
    name: Any = None
    domain: str | None = None


class ProjectUpdate(BaseModel):
    name: Any = None
    domain: str | None = None


class KeywordCreate(BaseModel):
    keyword: Any = None
    search_volume: int | None = None
    difficulty: int | None = None
    cpc: float | None = None
    keyword_score: int | None = None
    data: dict[str, Any] | None = None
    status: str = "saved"
    notes: str | None = None


class KeywordsUpdate(BaseModel):
    keyword_ids: list[str] | None = None
    status: str | None = None
    notes: str | None = None


class KeywordsDelete(BaseModel):
    keyword_ids: list[str] | None = None


async def _owned_project(project_id: str, user: User):
    return await projects_service.get_project(parse_object_id(project_id, "Project not found"), user.id)


@router.get("")
async def projects_list(user: User = Depends(get_current_user)):
    """List projects for current user (newest first) with keyword counts."""
    items = await projects_service.list_projects(user.id)
    return {"data": [project_out(p, count) for p, count in items]}


@router.post("", status_code=status.HTTP_201_CREATED)
async def project_create(body: ProjectCreate, user: User = Depends(get_current_user)):
    p = await projects_service.create_project(user.id, body.name, body.domain)
    return {"data": project_out(p, 0)}


@router.get("/{project_id}")
async def project_get(project_id: str, user: User = Depends(get_current_user)):
    p = await _owned_project(project_id, user)
    return {"data": project_out(p, await projects_service.keyword_count(p.id))}


@router.patch("/{project_id}")
async def project_update(project_id: str, body: ProjectUpdate, user: User = Depends(get_current_user)):
    """Update name and/or domain; only fields present in the body are changed."""
    p = await projects_service.update_project(
        parse_object_id(project_id, "Project not found"),
        user.id,
        **body.model_dump(exclude_unset=True),
    )
    return {"data": project_out(p)}


@router.delete("/{project_id}")
async def project_delete(project_id: str, user: User = Depends(get_current_user)):
    """Delete project and its saved keywords."""
    await projects_service.delete_project(parse_object_id(project_id, "Project not found"), user.id)
    return {"success": True}


@router.get("/{project_id}/keywords")
async def project_keywords_list(
    project_id: str,
    user: User = Depends(get_current_user),
    status_filter: str | None = Query(None, alias="status"),
    sort_by: str | None = Query(None),
    sort_order: str | None = Query("desc"),
    limit: int = Query(100),
    offset: int = Query(0),
):
    p = await _owned_project(project_id, user)
    limit, offset = paginate(limit, offset, max_limit=500)
    field, direction = sort_spec(sort_by, sort_order, KEYWORD_SORT_FIELDS)
    items, total = await projects_service.list_keywords(p, status_filter, field, direction, limit, offset)
    return {
        "data": [keyword_out(k) for k in items],
        "pagination": {"total": total, "limit": limit, "offset": offset},
    }


@router.post("/{project_id}/keywords", status_code=status.HTTP_201_CREATED)
async def project_keyword_add(project_id: str, body: KeywordCreate, user: User = Depends(get_current_user)):
    p = await _owned_project(project_id, user)
    k = await projects_service.add_keyword(p, **body.model_dump())
    return {"data": keyword_out(k)}


@router.patch("/{project_id}/keywords")
async def project_keywords_update(project_id: str, body: KeywordsUpdate, user: User = Depends(get_current_user)):
    """Bulk set status and/or notes on keywords by id."""
    p = await _owned_project(project_id, user)
    changes = body.model_dump(exclude_unset=True)
    keyword_ids = changes.pop("keyword_ids", None)
    items = await projects_service.update_keywords(p, keyword_ids, **changes)
    return {"data": [keyword_out(k) for k in items], "updated": len(items)}


@router.delete("/{project_id}/keywords")
async def project_keywords_delete(project_id: str, body: KeywordsDelete, user: User = Depends(get_current_user)):
    p = await _owned_project(project_id, user)
    deleted = await projects_service.delete_keywords(p, body.keyword_ids)
    return {"success": True, "deleted": deleted}
