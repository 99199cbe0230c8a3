from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from registry_service import crud, models, schemas
from registry_service.ai_client import AIClient, get_ai_client
from registry_service.database import get_db
from registry_service.logging_config import get_logger
from registry_service.routers.domains import MAX_PAGE_SIZE

logger = get_logger(__name__)

router = APIRouter(
    tags=["insights"],
)

@router.get("/domains/{domain_name}/valuation", response_model=schemas.DomainValuation)
async def get_domain_valuation(
    domain_name: str,
    ai: AIClient = Depends(get_ai_client)
):
    logger.info(f"Valuation requested for '{domain_name}'")
    valuation = await ai.domain_valuation(domain_name)
    return schemas.DomainValuation(domain=domain_name, valuation=valuation, generated_at=models.utcnow())

@router.get("/domains/{domain_name}/description", response_model=schemas.DomainDescription)
async def get_domain_description(
    domain_name: str,
    current_bid: Optional[float] = Query(None, alias="currentBid", ge=0),
    ai: AIClient = Depends(get_ai_client)
):
    logger.info(f"Description requested for '{domain_name}' (current bid: {current_bid})")
    description = await ai.domain_description(domain_name, current_bid)
    return schemas.DomainDescription(
        domain=domain_name,
        description=description,
        current_bid=current_bid,
        generated_at=models.utcnow(),
    )

@router.get("/market-analysis", response_model=schemas.MarketAnalysis)
async def get_market_analysis(
    db: AsyncSession = Depends(get_db),
    ai: AIClient = Depends(get_ai_client)
):
    domains = await crud.list_domains(db, limit=MAX_PAGE_SIZE)
    logger.info(f"Market analysis requested over {len(domains)} domain(s)")
    analysis = await ai.market_analysis(domains)
    return schemas.MarketAnalysis(analysis=analysis, domains_considered=len(domains), generated_at=models.utcnow())
