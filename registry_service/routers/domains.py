from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from registry_service import crud, schemas
from registry_service.database import get_db
from registry_service.exceptions import ConflictError
from registry_service.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

router = APIRouter(
    tags=["domains"],
)

@router.get("/domains", response_model=List[schemas.DomainPublic])
async def list_domains(
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1),
    skip: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db)
):
    effective_limit = min(limit, MAX_PAGE_SIZE)
    logger.info(f"Listing domains (limit={effective_limit}, skip={skip})")
    return await crud.list_domains(db, limit=effective_limit, skip=skip)

@router.post("/domains", response_model=schemas.DomainPublic, status_code=201)
async def create_domain(
    domain: schemas.DomainCreate,
    db: AsyncSession = Depends(get_db)
):
    if await crud.get_domain_by_name(db, domain.name):
        logger.warning(f"Domain '{domain.name}' already listed")
        raise ConflictError(f"Domain '{domain.name}' is already listed")
    db_domain = await crud.create_domain(db, domain)
    logger.info(f"Listed domain '{db_domain.name}' (ID: {db_domain.id})")
    return db_domain
