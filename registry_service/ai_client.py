from typing import Optional, Sequence

import httpx
from fastapi import Depends, Request

from registry_service import models
from registry_service.config import Settings, get_settings
from registry_service.exceptions import AIProviderError, AITimeoutError, AIUnavailableError
from registry_service.logging_config import get_logger

logger = get_logger(__name__)

def valuation_prompt(domain_name: str) -> str:
    return (
        f"You are an expert domain name appraiser. Estimate the market value of the domain '{domain_name}'. "
        "Consider length, memorability, extension, keyword strength and comparable sales. "
        "Answer with a short USD price range followed by two or three sentences of reasoning."
    )

def description_prompt(domain_name: str, current_bid: Optional[float] = None) -> str:
    bid_line = f" The current highest bid is {current_bid} ETH." if current_bid is not None else ""
    return (
        f"Write a compelling two-paragraph auction listing description for the domain '{domain_name}'.{bid_line} "
        "Highlight likely use cases and brand potential. Do not invent traffic or revenue figures."
    )

def market_analysis_prompt(domains: Sequence[models.DomainListing]) -> str:
    if domains:
        listing = "\n".join(
            f"- {d.name}: status={d.status}, highest bid={d.highest_bid} {d.currency}, time remaining={d.time_remaining or 'n/a'}"
            for d in domains
        )
    else:
        listing = "- (no domains currently listed)"
    return (
        "You are a domain auction market analyst. Based on the current listings below, summarise market activity, "
        "note which names attract the strongest bids and suggest what bidders should watch next.\n\n"
        f"Current listings:\n{listing}"
    )

class AIClient:
    """Thin wrapper over a messages-style text completion endpoint."""

    def __init__(self, http_client: httpx.AsyncClient, settings: Settings):
        self._client = http_client
        self._settings = settings

    @property
    def enabled(self) -> bool:
        return bool(self._settings.AI_API_KEY)

    async def complete(self, prompt: str) -> str:
        if not self.enabled:
            raise AIUnavailableError("AI text generation is not configured")

        payload = {
            "model": self._settings.AI_MODEL,
            "max_tokens": self._settings.AI_MAX_TOKENS,
            "messages": [{"role": "user", "content": prompt}],
        }
        headers = {
            "x-api-key": self._settings.AI_API_KEY,
            "anthropic-version": self._settings.AI_API_VERSION,
            "content-type": "application/json",
        }
        logger.info(f"Requesting completion from {self._settings.AI_API_URL} (model: {self._settings.AI_MODEL})")
        try:
            response = await self._client.post(
                self._settings.AI_API_URL,
                json=payload,
                headers=headers,
                timeout=self._settings.AI_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            logger.error(f"AI provider timed out: {str(e)}")
            raise AITimeoutError("AI provider timed out") from e
        except httpx.HTTPStatusError as e:
            logger.error(f"AI provider error. Status: {e.response.status_code}, Response: {e.response.text}")
            raise AIProviderError(f"AI provider returned status {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.error(f"AI provider request failed: {str(e)}")
            raise AIProviderError(f"AI provider request failed: {str(e)}") from e
        except ValueError as e:
            logger.error("AI provider returned a body that is not JSON")
            raise AIProviderError("AI provider returned an unreadable response") from e

        blocks = data.get("content") if isinstance(data, dict) else None
        text = "".join(
            block.get("text", "") for block in blocks or [] if isinstance(block, dict) and block.get("type") == "text"
        ).strip()
        if not text:
            raise AIProviderError("AI provider returned an empty completion")
        return text

    async def domain_valuation(self, domain_name: str) -> str:
        return await self.complete(valuation_prompt(domain_name))

    async def domain_description(self, domain_name: str, current_bid: Optional[float] = None) -> str:
        return await self.complete(description_prompt(domain_name, current_bid))

    async def market_analysis(self, domains: Sequence[models.DomainListing]) -> str:
        return await self.complete(market_analysis_prompt(domains))

def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client

def get_ai_client(
    http_client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
) -> AIClient:
    return AIClient(http_client, settings)
