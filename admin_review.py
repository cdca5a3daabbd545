import asyncio
import inspect
from typing import Awaitable, Callable, List, Optional, Set, Tuple, Union

import structlog
from pydantic import ValidationError

from api import AuraApi
from gateway import ApiResult, ErrorKind
from lifecycle import ViewScope
from schemas import AdminStats, RecordStatus, RegistrationRecord, ReviewSummary, Variant

log = structlog.get_logger(__name__)

STATUS_TABS = ("pending", "approved", "rejected", "all")
DECISIONS = (RecordStatus.APPROVED.value, RecordStatus.REJECTED.value)

Confirm = Callable[[str], Union[bool, Awaitable[bool]]]


class AdminReviewWorkflow:
    """Admin view over every donor and receiver application.

    The merged list is rebuilt from the backend on every ``load_all()``;
    status changes and deletions never edit it in place.
    """

    def __init__(
        self,
        api: AuraApi,
        scope: Optional[ViewScope] = None,
        in_flight: Optional[Set[Tuple[Variant, str]]] = None,
    ) -> None:
        self._api = api
        self.scope = scope or ViewScope("admin-review")
        self.records: List[RegistrationRecord] = []
        self.summary = ReviewSummary()
        self.stats = AdminStats()
        self.messages: List[dict] = []
        # Pass one set to every workflow that acts on the same records
        self._in_flight = in_flight if in_flight is not None else set()

    async def load_all(self) -> ApiResult:
        token = self.scope.enter()
        donors, receivers = await asyncio.gather(
            self._api.list_records(Variant.DONOR),
            self._api.list_records(Variant.RECEIVER),
        )
        if not token.active:
            log.debug("admin_load_discarded")
            return ApiResult.failure(ErrorKind.CANCELLED, "Superseded by a newer load.")

        merged: List[RegistrationRecord] = []
        for variant, result in ((Variant.DONOR, donors), (Variant.RECEIVER, receivers)):
            if result.ok:
                merged.extend(_tag(variant, result.data))

        self.records = merged
        self.summary = summarize(merged)
        log.info("admin_records_loaded", total=self.summary.total)

        for result in (donors, receivers):
            if not result.ok:
                return result
        return ApiResult.success(merged)

    async def load_stats(self) -> ApiResult:
        result = await self._api.admin_stats()
        if result.ok and isinstance(result.data, dict):
            self.stats = AdminStats.model_validate(result.data)
        return result

    async def load_messages(self) -> ApiResult:
        result = await self._api.admin_messages()
        if result.ok and isinstance(result.data, list):
            self.messages = result.data
        return result

    def filter(self, tab: str) -> List[RegistrationRecord]:
        if tab == "all":
            return list(self.records)
        return [record for record in self.records if record.status == tab]

    def by_variant(self, variant: Variant) -> List[RegistrationRecord]:
        return [record for record in self.records if record.variant == variant]

    def find(self, record_id: str, variant: Variant) -> Optional[RegistrationRecord]:
        for record in self.records:
            if record.id == record_id and record.variant == variant:
                return record
        return None

    async def set_status(
        self, record_id: str, variant: Variant, status: str, refresh: bool = True
    ) -> ApiResult:
        if status not in DECISIONS:
            return ApiResult.invalid("Invalid status value.")

        key = (variant, record_id)
        if key in self._in_flight:
            return ApiResult.invalid("An update for this record is already in progress.")

        self._in_flight.add(key)
        try:
            result = await self._api.set_record_status(variant, record_id, status)
        finally:
            self._in_flight.discard(key)

        if not result.ok:
            log.info("admin_status_failed", record_id=record_id, variant=variant.value,
                     status=result.status_code)
            return result

        log.info("admin_status_changed", record_id=record_id, variant=variant.value,
                 new_status=status)
        if refresh:
            await self.load_all()
        return result

    async def remove(
        self, record_id: str, variant: Variant, confirm: Confirm, refresh: bool = True
    ) -> ApiResult:
        prompt = (
            f"Are you sure you want to remove this {variant.value}? "
            "This action cannot be undone."
        )
        confirmed = confirm(prompt)
        if inspect.isawaitable(confirmed):
            confirmed = await confirmed
        if not confirmed:
            return ApiResult.failure(ErrorKind.CANCELLED, "Deletion cancelled.")

        key = (variant, record_id)
        if key in self._in_flight:
            return ApiResult.invalid("An update for this record is already in progress.")

        self._in_flight.add(key)
        try:
            result = await self._api.delete_record(variant, record_id)
        finally:
            self._in_flight.discard(key)

        if result.ok:
            log.info("admin_record_removed", record_id=record_id, variant=variant.value)
            if refresh:
                await self.load_all()
        return result


def summarize(records: List[RegistrationRecord]) -> ReviewSummary:
    pending = RecordStatus.PENDING.value
    return ReviewSummary(
        total=len(records),
        donors=sum(1 for r in records if r.variant == Variant.DONOR),
        receivers=sum(1 for r in records if r.variant == Variant.RECEIVER),
        pending_donors=sum(
            1 for r in records if r.variant == Variant.DONOR and r.status == pending
        ),
        pending_receivers=sum(
            1 for r in records if r.variant == Variant.RECEIVER and r.status == pending
        ),
    )


def _tag(variant: Variant, data) -> List[RegistrationRecord]:
    tagged = []
    for item in data if isinstance(data, list) else []:
        try:
            record = RegistrationRecord.model_validate(item)
        except ValidationError:
            log.warning("admin_record_skipped", variant=variant.value)
            continue
        tagged.append(record.model_copy(update={"variant": variant}))
    return tagged
