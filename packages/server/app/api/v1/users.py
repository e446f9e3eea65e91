"""
User management endpoints.

GET    /api/v1/users             - Search and page through users
POST   /api/v1/users             - Create a user
GET    /api/v1/users/{user_id}   - Get one user
PUT    /api/v1/users/{user_id}   - Partial update (only fields sent are written)
DELETE /api/v1/users/{user_id}   - Delete a user with no organization memberships
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from app.api.v1.deps import get_user_service
from app.services.users import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, UserService
from tenancy_shared.schemas.users import (
    UserCreateRequest,
    UserListResponse,
    UserResponse,
    UserUpdate,
)

router = APIRouter()


@router.get("", response_model=UserListResponse)
async def list_users(
    search: Optional[str] = Query(None),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    page: int = Query(1, ge=1),
    service: UserService = Depends(get_user_service),
):
    return await service.list_users(search=search, limit=limit, page=page)


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(body: UserCreateRequest, service: UserService = Depends(get_user_service)):
    return await service.create_user(body.name, body.email, body.password)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: str, service: UserService = Depends(get_user_service)):
    return await service.get_user(user_id)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    body: UserUpdate,
    service: UserService = Depends(get_user_service),
):
    return await service.update_user(user_id, body)


@router.delete("/{user_id}", status_code=204)
async def delete_user(user_id: str, service: UserService = Depends(get_user_service)):
    await service.delete_user(user_id)
    return Response(status_code=204)
