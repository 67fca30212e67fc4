# backend/classbook/routes/classes.py
"""
Class schedule endpoints.

Reads are public; creating, updating and deleting classes needs an admin
session.
"""

import asyncio
import logging
from typing import List

from fastapi import APIRouter, Depends

from ..api.dependencies import get_class_service, require_admin
from ..core.exceptions import DomainException
from ..errors import handle_domain_exception
from ..schemas.group_class import (
    GroupClassCreate,
    GroupClassEnvelope,
    GroupClassResponse,
    GroupClassUpdate,
)
from ..services.class_service import ClassService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/classes", tags=["classes"])


@router.get("", response_model=List[GroupClassResponse])
async def list_classes(
    class_service: ClassService = Depends(get_class_service),
) -> List[GroupClassResponse]:
    """All classes ordered by date and start time."""
    classes = await asyncio.to_thread(class_service.list_classes)
    return [GroupClassResponse.model_validate(item) for item in classes]


@router.get("/{class_id}", response_model=GroupClassResponse)
async def get_class(
    class_id: str,
    class_service: ClassService = Depends(get_class_service),
) -> GroupClassResponse:
    try:
        group_class = await asyncio.to_thread(class_service.get_class, class_id)
    except DomainException as e:
        handle_domain_exception(e)
    return GroupClassResponse.model_validate(group_class)


@router.post("", response_model=GroupClassEnvelope)
async def create_class(
    payload: GroupClassCreate,
    admin: str = Depends(require_admin),
    class_service: ClassService = Depends(get_class_service),
) -> GroupClassEnvelope:
    try:
        group_class = await asyncio.to_thread(class_service.create_class, payload)
    except DomainException as e:
        handle_domain_exception(e)
    logger.info("Class %s created by %s", group_class.id, admin)
    return GroupClassEnvelope(
        group_class=GroupClassResponse.model_validate(group_class),
        message="Class created successfully",
    )


@router.put("/{class_id}", response_model=GroupClassEnvelope)
async def update_class(
    class_id: str,
    payload: GroupClassUpdate,
    admin: str = Depends(require_admin),
    class_service: ClassService = Depends(get_class_service),
) -> GroupClassEnvelope:
    """Partial update; capacity can never drop below the spots already booked."""
    try:
        group_class = await asyncio.to_thread(class_service.update_class, class_id, payload)
    except DomainException as e:
        handle_domain_exception(e)
    logger.info("Class %s updated by %s", class_id, admin)
    return GroupClassEnvelope(
        group_class=GroupClassResponse.model_validate(group_class),
        message="Class updated successfully",
    )


@router.delete("/{class_id}", response_model=GroupClassEnvelope)
async def delete_class(
    class_id: str,
    admin: str = Depends(require_admin),
    class_service: ClassService = Depends(get_class_service),
) -> GroupClassEnvelope:
    try:
        group_class = await asyncio.to_thread(class_service.delete_class, class_id)
    except DomainException as e:
        handle_domain_exception(e)
    logger.info("Class %s deleted by %s", class_id, admin)
    return GroupClassEnvelope(
        group_class=GroupClassResponse.model_validate(group_class),
        message="Class deleted successfully",
    )
