"""
Redis-backed visit store for production.

Key layout (prefix defaults to ``vce``)::

    {prefix}:visit:{visit_id}                   Visit JSON
    {prefix}:visit:{visit_id}:vitals            VitalsRecord JSON
    {prefix}:visit:{visit_id}:assessments       hash instrument_id -> JSON
    {prefix}:visit:{visit_id}:measures          hash measure_id -> JSON
    {prefix}:visit:{visit_id}:checklist         JSON array
    {prefix}:visit:{visit_id}:codes             JSON array
    {prefix}:visit:{visit_id}:recommendations   hash rule_id -> JSON
    {prefix}:visit:{visit_id}:readiness         BillingReadinessResult JSON
    {prefix}:visit:{visit_id}:note              ClinicalNote JSON
    {prefix}:visit:{visit_id}:reviews           list of ReviewDecision JSON
    {prefix}:member:{member_id}:medications     hash id -> JSON
    {prefix}:member:{member_id}:labs            hash id -> JSON

Codes live in one value so a replace is a single SET. Status changes and
point updates to array values use WATCH/MULTI optimistic transactions.
"""

from collections.abc import Callable, Collection, Iterable
from typing import Any

from pydantic import TypeAdapter

from compliance_engine.config.logging import get_logger
from compliance_engine.models import (
    AssessmentResponse,
    BillingReadinessResult,
    ChecklistItem,
    ClinicalNote,
    LabResult,
    MeasureResult,
    MedReconciliationEntry,
    Recommendation,
    ReviewDecision,
    Visit,
    VisitCode,
    VisitStatus,
    VitalsRecord,
)
from compliance_engine.store.base import VisitStore, write_code

logger = get_logger(__name__)

_CODES = TypeAdapter(list[VisitCode])
_CHECKLIST = TypeAdapter(list[ChecklistItem])


class RedisVisitStore(VisitStore):
    """Redis-backed visit store."""

    def __init__(self, redis_url: str, key_prefix: str = "vce", require_tls: bool = False):
        """
        Initialize Redis storage.

        Args:
            redis_url: Redis connection URL
            key_prefix: Namespace for every key this store writes
            require_tls: If True, require rediss:// scheme
        """
        self._redis_url = redis_url
        self._prefix = key_prefix
        self._client = None

        if require_tls and not redis_url.startswith("rediss://"):
            raise ValueError(
                "Redis TLS required but URL does not use rediss:// scheme. "
                "Set VCE_REQUIRE_REDIS_TLS=false to disable this check."
            )

        if not redis_url.startswith("rediss://"):
            logger.warning("Redis connection not using TLS", redis_url=redis_url[:20] + "...")

    async def _get_client(self):
        """Lazily initialize Redis client."""
        if self._client is None:
            import redis.asyncio as redis

            self._client = redis.from_url(self._redis_url, decode_responses=True)
        return self._client

    async def close(self) -> None:
        """Close Redis connection."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _visit_key(self, visit_id: str, suffix: str | None = None) -> str:
        key = f"{self._prefix}:visit:{visit_id}"
        return f"{key}:{suffix}" if suffix else key

    def _member_key(self, member_id: str, suffix: str) -> str:
        return f"{self._prefix}:member:{member_id}:{suffix}"

    async def _update(self, key: str, mutate: Callable[[str | None], str | None]) -> str | None:
        """
        Read-modify-write one value under WATCH, retrying on contention.

        ``mutate`` receives the current raw value and returns the new raw
        value, or None to abort without writing.
        """
        from redis.exceptions import WatchError

        client = await self._get_client()
        async with client.pipeline(transaction=True) as pipe:
            while True:
                try:
                    await pipe.watch(key)
                    new_value = mutate(await pipe.get(key))
                    if new_value is None:
                        await pipe.unwatch()
                        return None
                    pipe.multi()
                    pipe.set(key, new_value)
                    await pipe.execute()
                    return new_value
                except WatchError:
                    logger.debug("Concurrent write detected, retrying", key=key)
                    continue

    # -- Visits --

    async def get_visit(self, visit_id: str) -> Visit | None:
        client = await self._get_client()
        data = await client.get(self._visit_key(visit_id))
        return Visit.model_validate_json(data) if data else None

    async def save_visit(self, visit: Visit) -> None:
        client = await self._get_client()
        await client.set(self._visit_key(visit.id), visit.model_dump_json())

    async def update_visit_status(
        self,
        visit_id: str,
        expected: Collection[VisitStatus],
        new_status: VisitStatus,
        changes: dict[str, Any] | None = None,
    ) -> Visit | None:
        def mutate(raw: str | None) -> str | None:
            if raw is None:
                return None
            current = Visit.model_validate_json(raw)
            if current.status not in expected:
                return None
            return current.model_copy(
                update={**(changes or {}), "status": new_status}
            ).model_dump_json()

        written = await self._update(self._visit_key(visit_id), mutate)
        return Visit.model_validate_json(written) if written else None

    # -- Clinical data --

    async def get_vitals(self, visit_id: str) -> VitalsRecord | None:
        client = await self._get_client()
        data = await client.get(self._visit_key(visit_id, "vitals"))
        return VitalsRecord.model_validate_json(data) if data else None

    async def save_vitals(self, vitals: VitalsRecord) -> None:
        client = await self._get_client()
        await client.set(self._visit_key(vitals.visit_id, "vitals"), vitals.model_dump_json())

    async def list_assessments(self, visit_id: str) -> list[AssessmentResponse]:
        client = await self._get_client()
        values = await client.hvals(self._visit_key(visit_id, "assessments"))
        return [AssessmentResponse.model_validate_json(v) for v in values]

    async def save_assessment(self, response: AssessmentResponse) -> None:
        client = await self._get_client()
        await client.hset(
            self._visit_key(response.visit_id, "assessments"),
            response.instrument_id,
            response.model_dump_json(),
        )

    async def list_measures(self, visit_id: str) -> list[MeasureResult]:
        client = await self._get_client()
        values = await client.hvals(self._visit_key(visit_id, "measures"))
        return [MeasureResult.model_validate_json(v) for v in values]

    async def save_measure(self, result: MeasureResult) -> None:
        client = await self._get_client()
        await client.hset(
            self._visit_key(result.visit_id, "measures"),
            result.measure_id,
            result.model_dump_json(),
        )

    async def list_checklist(self, visit_id: str) -> list[ChecklistItem]:
        client = await self._get_client()
        data = await client.get(self._visit_key(visit_id, "checklist"))
        return _CHECKLIST.validate_json(data) if data else []

    async def save_checklist_items(self, visit_id: str, items: Iterable[ChecklistItem]) -> None:
        updates = list(items)

        def mutate(raw: str | None) -> str:
            current = _CHECKLIST.validate_json(raw) if raw else []
            by_id = {item.id: item for item in current}
            for item in updates:
                by_id[item.id] = item
            return _CHECKLIST.dump_json(list(by_id.values())).decode()

        await self._update(self._visit_key(visit_id, "checklist"), mutate)

    async def list_medications(self, member_id: str) -> list[MedReconciliationEntry]:
        client = await self._get_client()
        values = await client.hvals(self._member_key(member_id, "medications"))
        return [MedReconciliationEntry.model_validate_json(v) for v in values]

    async def save_medication(self, entry: MedReconciliationEntry) -> None:
        client = await self._get_client()
        await client.hset(
            self._member_key(entry.member_id, "medications"), entry.id, entry.model_dump_json()
        )

    async def list_labs(self, member_id: str) -> list[LabResult]:
        client = await self._get_client()
        values = await client.hvals(self._member_key(member_id, "labs"))
        return [LabResult.model_validate_json(v) for v in values]

    async def save_lab(self, lab: LabResult) -> None:
        client = await self._get_client()
        await client.hset(self._member_key(lab.member_id, "labs"), lab.id, lab.model_dump_json())

    # -- Engine output --

    async def list_codes(self, visit_id: str) -> list[VisitCode]:
        client = await self._get_client()
        data = await client.get(self._visit_key(visit_id, "codes"))
        return _CODES.validate_json(data) if data else []

    async def replace_codes(self, visit_id: str, codes: Iterable[VisitCode]) -> None:
        client = await self._get_client()
        await client.set(self._visit_key(visit_id, "codes"), _CODES.dump_json(list(codes)).decode())

    async def _write_code(self, code: VisitCode, *, insert: bool) -> None:
        # The duplicate check runs on the watched value, so a concurrent write
        # to the codes key forces a retry against the new rows
        def mutate(raw: str | None) -> str:
            rows = _CODES.validate_json(raw) if raw else []
            return _CODES.dump_json(write_code(rows, code, insert=insert)).decode()

        await self._update(self._visit_key(code.visit_id, "codes"), mutate)

    async def insert_code(self, code: VisitCode) -> None:
        await self._write_code(code, insert=True)

    async def update_code(self, code: VisitCode) -> None:
        await self._write_code(code, insert=False)

    async def list_recommendations(self, visit_id: str) -> list[Recommendation]:
        client = await self._get_client()
        values = await client.hvals(self._visit_key(visit_id, "recommendations"))
        recs = [Recommendation.model_validate_json(v) for v in values]
        return sorted(recs, key=lambda rec: rec.triggered_at)

    async def add_recommendations(
        self, visit_id: str, recommendations: Iterable[Recommendation]
    ) -> list[Recommendation]:
        candidates = list(recommendations)
        if not candidates:
            return []

        client = await self._get_client()
        key = self._visit_key(visit_id, "recommendations")
        async with client.pipeline(transaction=True) as pipe:
            for rec in candidates:
                pipe.hsetnx(key, rec.rule_id, rec.model_dump_json())
            results = await pipe.execute()
        return [rec for rec, added in zip(candidates, results) if added]

    async def save_recommendation(self, recommendation: Recommendation) -> None:
        client = await self._get_client()
        await client.hset(
            self._visit_key(recommendation.visit_id, "recommendations"),
            recommendation.rule_id,
            recommendation.model_dump_json(),
        )

    async def get_readiness(self, visit_id: str) -> BillingReadinessResult | None:
        client = await self._get_client()
        data = await client.get(self._visit_key(visit_id, "readiness"))
        return BillingReadinessResult.model_validate_json(data) if data else None

    async def save_readiness(self, result: BillingReadinessResult) -> None:
        client = await self._get_client()
        await client.set(self._visit_key(result.visit_id, "readiness"), result.model_dump_json())

    async def get_note(self, visit_id: str) -> ClinicalNote | None:
        client = await self._get_client()
        data = await client.get(self._visit_key(visit_id, "note"))
        return ClinicalNote.model_validate_json(data) if data else None

    async def save_note(self, note: ClinicalNote) -> None:
        client = await self._get_client()
        await client.set(self._visit_key(note.visit_id, "note"), note.model_dump_json())

    async def add_review(self, review: ReviewDecision) -> None:
        client = await self._get_client()
        await client.rpush(self._visit_key(review.visit_id, "reviews"), review.model_dump_json())

    async def list_reviews(self, visit_id: str) -> list[ReviewDecision]:
        client = await self._get_client()
        values = await client.lrange(self._visit_key(visit_id, "reviews"), 0, -1)
        return [ReviewDecision.model_validate_json(v) for v in values]
