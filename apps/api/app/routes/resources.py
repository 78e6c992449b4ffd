from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from fastapi import APIRouter, HTTPException, Query, Response, status

from app.core.security import AuthDep
from app.schemas.resources import (
    CreateResourceRequest,
    LearningResource,
    LearningStats,
    ResourceStatus,
    ResourceType,
    UpdateResourceRequest,
)
from app.services.learning_store import RESOURCES_TABLE, fetch_resources, user_client
from app.services.resources import (
    collect_tags,
    compute_learning_stats,
    filter_resources,
)

router = APIRouter()


def _not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND, detail="Resource not found"
    )


@router.get("/resources", response_model=list[LearningResource])
async def list_resources(
    auth: AuthDep,
    status_filter: ResourceStatus | Literal["all"] | None = Query(
        default=None, alias="status"
    ),
    type_filter: ResourceType | Literal["all"] | None = Query(default=None, alias="type"),
    tag: str | None = Query(default=None, max_length=40),
    q: str | None = Query(default=None, max_length=200),
) -> list[LearningResource]:
    resources = await fetch_resources(auth)
    return filter_resources(
        resources, status=status_filter, type=type_filter, tag=tag, query=q
    )


@router.get("/resources/tags")
async def list_resource_tags(auth: AuthDep) -> dict[str, list[str]]:
    return {"tags": collect_tags(await fetch_resources(auth))}


@router.post(
    "/resources",
    response_model=LearningResource,
    status_code=status.HTTP_201_CREATED,
)
async def create_resource(body: CreateResourceRequest, auth: AuthDep) -> LearningResource:
    row = {
        **body.model_dump(mode="json"),
        "user_id": auth.user_id,
    }
    created = await user_client().insert_one(
        RESOURCES_TABLE, bearer_token=auth.access_token, row=row
    )
    if not created:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save resource",
        )
    return LearningResource.model_validate(created)


@router.patch("/resources/{resource_id}", response_model=LearningResource)
async def update_resource(
    resource_id: str, body: UpdateResourceRequest, auth: AuthDep
) -> LearningResource:
    payload = body.model_dump(mode="json", exclude_unset=True)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="No fields to update",
        )
    payload["updated_at"] = datetime.now(timezone.utc).isoformat()

    updated = await user_client().patch(
        RESOURCES_TABLE,
        bearer_token=auth.access_token,
        params={"id": f"eq.{resource_id}", "user_id": f"eq.{auth.user_id}"},
        payload=payload,
    )
    if not updated:
        raise _not_found()
    return LearningResource.model_validate(updated[0])


@router.delete("/resources/{resource_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_resource(resource_id: str, auth: AuthDep) -> Response:
    deleted = await user_client().delete(
        RESOURCES_TABLE,
        bearer_token=auth.access_token,
        params={"id": f"eq.{resource_id}", "user_id": f"eq.{auth.user_id}"},
    )
    if not deleted:
        raise _not_found()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/stats", response_model=LearningStats)
async def get_learning_stats(auth: AuthDep) -> LearningStats:
    return compute_learning_stats(await fetch_resources(auth))
