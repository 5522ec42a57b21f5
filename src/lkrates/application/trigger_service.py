# src/lkrates/application/trigger_service.py
"""
Trigger Service - Scrape Trigger Endpoint Logic

Framework-agnostic handling of the scrape trigger endpoint. An HTTP layer
(not part of this package) authenticates the caller and maps its request
onto handle_post / handle_get; the returned TriggerResponse carries the
status code, JSON body and quota headers to send back.

POST flow:
1. Parse the optional body ({"sources": [...], "async": bool}); a malformed
   body or unknown source id is a 400 and does not consume quota.
2. Ask the admission gate; a full window is a 429 with Retry-After.
3. async (default): start the scrape in the background and answer 202.
   sync: wait for the results and answer 200, even when some sources failed.
Unexpected errors are a 500.

Files that USE this module:
- lkrates.app (builds the service for the composition root)

Files that this module USES:
- lkrates.shared.rate_limiter (AdmissionGate)
- lkrates.application.scraping_service (ScrapingService)
- pydantic (request body validation)
"""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Set, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as RequestValidationError

from lkrates.application.scraping_service import ScrapingService
from lkrates.domain.models import QuotaStatus, RateLimitResult
from lkrates.shared.rate_limiter import AdmissionGate
from lkrates.shared.validators import validate_source_id

log = logging.getLogger(__name__)


class TriggerRequest(BaseModel):
    """Body of a trigger POST. Both fields are optional."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    sources: Optional[List[str]] = None
    run_async: bool = Field(default=True, alias="async")

    @field_validator("sources")
    @classmethod
    def normalize_sources(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return None
        out: List[str] = []
        for source_id in v:
            source_id = source_id.strip().lower()
            if not source_id:
                continue
            if not validate_source_id(source_id):
                raise ValueError(f"malformed source id: {source_id!r}")
            if source_id not in out:
                out.append(source_id)
        return out or None


@dataclass(frozen=True)
class TriggerResponse:
    status_code: int
    body: Dict[str, Any]
    headers: Dict[str, str] = field(default_factory=dict)


def _quota_headers(limit: int, remaining: int, reset_time: int) -> Dict[str, str]:
    return {
        "X-RateLimit-Limit": str(limit),
        "X-RateLimit-Remaining": str(remaining),
        "X-RateLimit-Reset": str(reset_time),
    }


def _rate_limit_body(result: RateLimitResult) -> Dict[str, Any]:
    return {"limit": result.limit, "remaining": result.remaining, "resetTime": result.reset_time}


class TriggerService:
    """Composes the admission gate and the scraping service for the trigger endpoint."""

    def __init__(self, gate: AdmissionGate, scraping_service: ScrapingService, trigger_key: str = "scraping_trigger"):
        self.gate = gate
        self.scraping_service = scraping_service
        self.trigger_key = trigger_key
        self._background: Set[asyncio.Task] = set()

    @staticmethod
    def parse_request(body: Union[None, str, bytes, Mapping[str, Any]]) -> TriggerRequest:
        """
        Validate a raw or decoded request body.

        Raises:
            pydantic.ValidationError: If the body is malformed
        """
        if body is None:
            return TriggerRequest()
        if isinstance(body, (str, bytes)):
            if not body.strip():
                return TriggerRequest()
            return TriggerRequest.model_validate_json(body)
        return TriggerRequest.model_validate(body)

    async def handle_post(self, body: Union[None, str, bytes, Mapping[str, Any]] = None) -> TriggerResponse:
        """
        Handle a trigger POST.

        Args:
            body: Request body as JSON text/bytes, an already-decoded mapping, or None

        Returns:
            TriggerResponse with status 202, 200, 400, 429 or 500
        """
        try:
            request = self.parse_request(body)
        except RequestValidationError as e:
            details = [f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}" for err in e.errors()]
            log.info("Rejected trigger with invalid body: %s", "; ".join(details))
            return TriggerResponse(400, {"error": "Invalid request body", "details": details})

        available = self.scraping_service.available_sources()
        if request.sources:
            unknown = [s for s in request.sources if not self.scraping_service.has_source(s)]
            if unknown:
                return TriggerResponse(400, {
                    "error": f"Unknown source(s): {', '.join(unknown)}",
                    "availableSources": available,
                })

        rate = await self.gate.check_limit(self.trigger_key)
        headers = _quota_headers(rate.limit, rate.remaining, rate.reset_time)
        if not rate.allowed:
            headers["Retry-After"] = str(rate.retry_after or 0)
            return TriggerResponse(429, {
                "error": "Rate limit exceeded",
                "message": f"Scraping can be triggered {rate.limit} time(s) per window. "
                           f"Try again in {rate.retry_after} seconds.",
                "retryAfter": rate.retry_after,
                "resetTime": rate.reset_time,
            }, headers)

        sources = request.sources or available
        try:
            if request.run_async:
                self._start_background(request.sources)
                return TriggerResponse(202, {
                    "success": True,
                    "message": "Scraping job started",
                    "async": True,
                    "sources": sources,
                    "rateLimit": _rate_limit_body(rate),
                }, headers)

            body_out = await self._run(request.sources)
            body_out["rateLimit"] = _rate_limit_body(rate)
            return TriggerResponse(200, body_out, headers)
        except Exception as e:
            log.exception("Trigger failed")
            return TriggerResponse(500, {"error": "Internal server error", "message": str(e)}, headers)

    async def handle_get(self) -> TriggerResponse:
        """Describe the endpoint and report remaining quota without consuming it."""
        status: QuotaStatus = await self.gate.get_status(self.trigger_key)
        return TriggerResponse(200, {
            "sources": self.scraping_service.available_sources(),
            "rateLimit": {
                "windowMs": self.gate.config.window_ms,
                "maxRequests": self.gate.config.max_requests,
                "remaining": status.remaining,
                "resetTime": status.reset_time,
            },
            "usage": {
                "method": "POST",
                "body": {"sources": "optional list of source ids", "async": "optional, default true"},
            },
        }, _quota_headers(status.limit, status.remaining, status.reset_time))

    async def _run(self, sources: Optional[List[str]]) -> Dict[str, Any]:
        if not sources:
            batch = await self.scraping_service.scrape_all()
            return {
                "success": True,
                "summary": {
                    "total": batch.total_sources,
                    "succeeded": batch.succeeded_count,
                    "failed": batch.failed_count,
                    "elapsedMs": batch.total_elapsed_ms,
                },
                "results": [r.to_json() for r in batch.per_source_results],
            }

        results = await asyncio.gather(*(self.scraping_service.scrape_one(s) for s in sources))
        succeeded = sum(1 for r in results if r.succeeded)
        return {
            "success": True,
            "summary": {"total": len(results), "succeeded": succeeded, "failed": len(results) - succeeded},
            "results": [r.to_json() for r in results],
        }

    def _start_background(self, sources: Optional[List[str]]) -> None:
        task = asyncio.create_task(self._run_in_background(sources))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _run_in_background(self, sources: Optional[List[str]]) -> None:
        try:
            body = await self._run(sources)
            log.info("Background scrape finished: %s", json.dumps(body["summary"]))
        except Exception:
            log.exception("Background scrape failed")

    @property
    def pending(self) -> int:
        """Number of background scrapes still running."""
        return len(self._background)

    async def drain(self) -> None:
        """Wait for every background scrape to finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
