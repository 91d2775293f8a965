"""
ALLOCATION ENGINE
Single source of truth for a family's social support budget

RESPONSIBILITIES:
- Aggregate committed PE contributions across all four category stores
- Guard every write against the family's support cap
- Reserve budget atomically in the family ledger in the same transaction as the record write
- Drive the Pending → Approved | Rejected lifecycle

RULES:
❌ No HTTP, no SQL - repositories are injected
❌ Approval never re-runs the guard (Pending already holds its budget)
✅ Aggregate recomputed from scratch on every call
✅ Ledger compare-and-swap is the authoritative check
✅ Rejected / deactivated records release their reservation
✅ Record writes carry the version they read; a concurrent change raises StaleRecordError
✅ Lowering an amount never needs headroom
"""

import logging
from decimal import Decimal
from typing import List, Optional, Protocol, Tuple

from fdp_support.domain.errors import (
    BudgetExceededError,
    NotFoundError,
    StaleRecordError,
    ValidationError,
    format_pkr,
)
from fdp_support.domain.models import (
    AllocationSnapshot,
    ApprovalStatus,
    CategoryDescriptor,
    ContributionBreakdown,
    FamilyBaseline,
    LedgerReservation,
    PovertyAssessment,
    PovertyPolicy,
    RecordRef,
    SupportCategory,
    SupportRecord,
    SupportRequest,
    get_descriptor,
)
from fdp_support.domain.services.contribution_calculator import ContributionCalculator
from fdp_support.domain.services.poverty_classifier import assess_family

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class BaselineRepository(Protocol):
    """Protocol for family baseline access - ASYNC"""

    async def get(self, family_id: str) -> Optional[FamilyBaseline]:
        ...


class SupportRecordRepository(Protocol):
    """Protocol for the four category stores - ASYNC"""

    async def get(
        self, category: SupportCategory, record_id: int, for_update: bool = False
    ) -> Optional[SupportRecord]:
        ...

    async def sum_pe_contribution(self, family_id: str, exclude: Optional[RecordRef] = None) -> Decimal:
        ...

    async def create(
        self,
        category: SupportCategory,
        family_id: str,
        assessment: PovertyAssessment,
        baseline: FamilyBaseline,
        breakdown: ContributionBreakdown,
        request: SupportRequest,
    ) -> SupportRecord:
        ...

    async def update(
        self,
        category: SupportCategory,
        record_id: int,
        assessment: PovertyAssessment,
        breakdown: ContributionBreakdown,
        request: SupportRequest,
        expected_version: int,
    ) -> SupportRecord:
        ...

    async def set_status(
        self,
        category: SupportCategory,
        record_id: int,
        status: ApprovalStatus,
        remarks: Optional[str],
        actor: Optional[str],
        expected_version: int,
    ) -> SupportRecord:
        ...

    async def deactivate(
        self, category: SupportCategory, record_id: int, actor: Optional[str], expected_version: int
    ) -> SupportRecord:
        ...


class LedgerRepository(Protocol):
    """Protocol for the per-family running total - ASYNC"""

    async def get_committed(self, family_id: str) -> Optional[Decimal]:
        ...

    async def open(self, family_id: str, opening_total: Decimal, cap: Decimal) -> None:
        ...

    async def try_reserve(self, family_id: str, delta: Decimal, cap: Decimal) -> LedgerReservation:
        ...

    async def release(self, family_id: str, amount: Decimal) -> Decimal:
        ...

    async def reset(self, family_id: str, total: Decimal, cap: Decimal) -> Decimal:
        ...


class ApprovalLogRepository(Protocol):
    """Protocol for approval action log - ASYNC"""

    async def add(
        self,
        record: SupportRecord,
        from_status: ApprovalStatus,
        to_status: ApprovalStatus,
        remarks: Optional[str],
        action_by: Optional[str],
    ) -> int:
        ...


class AllocationAggregator:
    """Sums already-defined social support for a family"""

    def __init__(self, record_repo: SupportRecordRepository):
        self.record_repo = record_repo

    async def already_defined(self, family_id: str, exclude: Optional[RecordRef] = None) -> Decimal:
        """
        Total committed PE contribution across every category.

        Args:
            family_id: Family / form number
            exclude: Record under edit, so it does not count against itself

        Returns:
            Decimal total (0 when nothing is committed)
        """
        total = await self.record_repo.sum_pe_contribution(family_id, exclude)
        return Decimal(total or 0)


class AllocationGuard:
    """Compares a candidate contribution with the remaining budget"""

    @staticmethod
    def can_allocate(candidate: Decimal, already_used: Decimal, cap: Decimal) -> Tuple[bool, str]:
        """
        Check if a contribution fits under the cap

        Returns:
            (fits, reason)
        """
        candidate = Decimal(candidate)
        if candidate < ZERO:
            return False, "Contribution cannot be negative"
        if candidate + Decimal(already_used) > Decimal(cap):
            excess = candidate + Decimal(already_used) - Decimal(cap)
            return False, f"Exceeds by {format_pkr(excess)}"
        return True, "OK"

    def check(self, candidate: Decimal, already_used: Decimal, cap: Decimal) -> None:
        """
        Raises:
            BudgetExceededError: if candidate + already_used > cap
        """
        fits, _ = self.can_allocate(candidate, already_used, cap)
        if not fits:
            raise BudgetExceededError(cap=cap, already_used=already_used, candidate=candidate)


class AllocationEngine:
    """
    Allocation Engine - ASYNC
    Enforces sum(PE contributions) <= support cap for every family
    """

    def __init__(
        self,
        policy: PovertyPolicy,
        calculator: ContributionCalculator,
        baseline_repo: BaselineRepository,
        record_repo: SupportRecordRepository,
        ledger_repo: LedgerRepository,
        approval_log_repo: ApprovalLogRepository,
    ):
        """Initialize with policy and repository dependencies"""
        self.policy = policy
        self.calculator = calculator
        self.baseline_repo = baseline_repo
        self.record_repo = record_repo
        self.ledger_repo = ledger_repo
        self.approval_log_repo = approval_log_repo
        self.aggregator = AllocationAggregator(record_repo)
        self.guard = AllocationGuard()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_baseline(self, family_id: str) -> FamilyBaseline:
        baseline = await self.baseline_repo.get(family_id)
        if baseline is None:
            raise NotFoundError("Family baseline", family_id)
        return baseline

    async def assess(self, family_id: str) -> PovertyAssessment:
        """Poverty level and support cap for a family"""
        baseline = await self.get_baseline(family_id)
        return assess_family(self.policy, baseline)

    async def get_snapshot(self, family_id: str, exclude: Optional[RecordRef] = None) -> AllocationSnapshot:
        """Already used / cap / available for display"""
        assessment = await self.assess(family_id)
        already = await self.aggregator.already_defined(family_id, exclude)
        return AllocationSnapshot(
            family_id=family_id,
            poverty_level=assessment.poverty_level,
            cap=assessment.support_cap,
            already_used=already,
        )

    async def get_record(self, category, record_id: int) -> SupportRecord:
        descriptor = get_descriptor(category)
        record = await self.record_repo.get(descriptor.category, record_id)
        if record is None or not record.is_active:
            raise NotFoundError(f"{descriptor.label} record", record_id)
        return record

    async def preview(
        self,
        category,
        family_id: str,
        request: SupportRequest,
        exclude_record_id: Optional[int] = None,
    ) -> Tuple[ContributionBreakdown, AllocationSnapshot]:
        """
        Live form computation - no validation errors, no writes.
        Negative inputs are clamped rather than rejected.
        """
        descriptor = get_descriptor(category)
        breakdown = self.calculator.calculate(
            descriptor, request.cost_lines, request.duration_months, request.details
        )
        exclude = RecordRef(descriptor.category, exclude_record_id) if exclude_record_id else None
        snapshot = await self.get_snapshot(family_id, exclude)
        return breakdown, snapshot

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def submit(
        self,
        category,
        family_id: str,
        request: SupportRequest,
    ) -> Tuple[SupportRecord, AllocationSnapshot]:
        """
        Draft → Pending for a new record.

        Raises:
            ValidationError, NotFoundError, BudgetExceededError
        """
        descriptor = get_descriptor(category)
        request = self.calculator.validate(descriptor, request)
        breakdown = self._calculate(descriptor, request)

        baseline = await self.get_baseline(family_id)
        assessment = assess_family(self.policy, baseline)
        candidate = breakdown.total_pe_contribution

        already = await self._guard(descriptor, family_id, assessment.support_cap, candidate)
        await self._reserve(descriptor, family_id, assessment.support_cap, candidate, already)

        record = await self.record_repo.create(
            descriptor.category, family_id, assessment, baseline, breakdown, request
        )
        logger.info(
            "Accepted %s record %s for family %s: PE %s (cap %s)",
            descriptor.category.value, record.id, family_id,
            candidate, assessment.support_cap,
        )
        return record, await self.get_snapshot(family_id)

    async def update(
        self,
        category,
        record_id: int,
        request: SupportRequest,
        expected_version: Optional[int] = None,
    ) -> Tuple[SupportRecord, AllocationSnapshot]:
        """
        Re-validate and re-save a Pending record with itself excluded
        from the aggregate. Only the change in PE contribution moves the
        ledger; lowering an amount never needs headroom.

        Raises:
            ValidationError, NotFoundError, StaleRecordError, BudgetExceededError
        """
        descriptor = get_descriptor(category)
        request = self.calculator.validate(descriptor, request)
        breakdown = self._calculate(descriptor, request)

        existing = await self._lock_record(descriptor, record_id)
        self._ensure_editable(descriptor, existing, "edited")
        if expected_version is not None and expected_version != existing.version:
            raise StaleRecordError(descriptor.category.value, record_id, expected_version, existing.version)

        family_id = existing.family_id
        assessment = await self.assess(family_id)
        candidate = breakdown.total_pe_contribution
        prior = existing.total_pe_contribution
        exclude = RecordRef(descriptor.category, record_id)

        if candidate > prior:
            already = await self._guard(descriptor, family_id, assessment.support_cap, candidate, exclude)
        else:
            already = await self.aggregator.already_defined(family_id, exclude)

        # Version-checked write first: a concurrent edit fails here, before the ledger moves
        record = await self.record_repo.update(
            descriptor.category, record_id, assessment, breakdown, request,
            expected_version=existing.version,
        )
        await self._reserve(descriptor, family_id, assessment.support_cap, candidate, already, prior)

        logger.info(
            "Updated %s record %s for family %s: PE %s -> %s",
            descriptor.category.value, record_id, family_id, prior, candidate,
        )
        return record, await self.get_snapshot(family_id)

    async def set_approval(
        self,
        category,
        record_id: int,
        status: ApprovalStatus,
        remarks: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> SupportRecord:
        """
        Pending → Approved | Rejected.

        Approval keeps the reservation made at submission; rejection
        releases it.
        """
        descriptor = get_descriptor(category)
        status = ApprovalStatus(status)
        if status is ApprovalStatus.PENDING:
            raise ValidationError("Approval status must be Approved or Rejected", field="status")

        existing = await self._lock_record(descriptor, record_id)
        self._ensure_editable(descriptor, existing, status.value.lower())

        record = await self.record_repo.set_status(
            descriptor.category, record_id, status, remarks, actor,
            expected_version=existing.version,
        )
        if status is ApprovalStatus.REJECTED:
            await self._release(existing)

        await self.approval_log_repo.add(record, existing.approval_status, status, remarks, actor)
        logger.info(
            "%s record %s for family %s marked %s by %s",
            descriptor.label, record_id, existing.family_id, status.value, actor or "unknown",
        )
        return record

    async def deactivate(self, category, record_id: int, actor: Optional[str] = None) -> SupportRecord:
        """Soft-delete a Pending record and release its reservation"""
        descriptor = get_descriptor(category)
        existing = await self._lock_record(descriptor, record_id)
        self._ensure_editable(descriptor, existing, "deleted")

        record = await self.record_repo.deactivate(
            descriptor.category, record_id, actor, expected_version=existing.version
        )
        await self._release(existing)
        logger.info(
            "Deactivated %s record %s for family %s, released %s",
            descriptor.category.value, record_id, existing.family_id, existing.total_pe_contribution,
        )
        return record

    async def check_ledger(self, family_id: str) -> Tuple[AllocationSnapshot, Optional[Decimal], List[str]]:
        """
        Compare the ledger with a fresh aggregate

        Returns:
            (snapshot, ledger total or None if never opened, list of issues)
        """
        snapshot = await self.get_snapshot(family_id)
        ledger_total = await self.ledger_repo.get_committed(family_id)
        _, issues = self.validate_integrity(snapshot, ledger_total)
        return snapshot, ledger_total, issues

    async def rebuild_ledger(self, family_id: str) -> AllocationSnapshot:
        """Reset the ledger from a fresh aggregate (reconciliation)"""
        snapshot, previous, issues = await self.check_ledger(family_id)
        for issue in issues:
            logger.warning("Family %s before rebuild: %s", family_id, issue)
        await self.ledger_repo.reset(family_id, snapshot.already_used, snapshot.cap)
        if previous is not None and previous != snapshot.already_used:
            logger.warning(
                "Ledger drift for family %s: ledger %s, records %s",
                family_id, previous, snapshot.already_used,
            )
        return snapshot

    def validate_integrity(self, snapshot: AllocationSnapshot, ledger_total: Optional[Decimal]) -> Tuple[bool, List[str]]:
        """
        Validate a family's budget state

        Returns:
            (is_valid, list of issues)
        """
        issues = []
        if snapshot.already_used > snapshot.cap:
            issues.append(
                f"Committed support {format_pkr(snapshot.already_used)} exceeds cap {format_pkr(snapshot.cap)}"
            )
        if ledger_total is not None and ledger_total != snapshot.already_used:
            issues.append(
                f"Ledger total {format_pkr(ledger_total)} does not match records {format_pkr(snapshot.already_used)}"
            )
        return len(issues) == 0, issues

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _calculate(self, descriptor: CategoryDescriptor, request: SupportRequest) -> ContributionBreakdown:
        return self.calculator.calculate(
            descriptor, request.cost_lines, request.duration_months, request.details
        )

    async def _lock_record(self, descriptor: CategoryDescriptor, record_id: int) -> SupportRecord:
        """Current row, locked for the rest of the transaction where the store supports it"""
        record = await self.record_repo.get(descriptor.category, record_id, for_update=True)
        if record is None or not record.is_active:
            raise NotFoundError(f"{descriptor.label} record", record_id)
        return record

    @staticmethod
    def _ensure_editable(descriptor: CategoryDescriptor, record: SupportRecord, action: str) -> None:
        if record.approval_status.is_terminal:
            raise ValidationError(
                f"{descriptor.label} record {record.id} is {record.approval_status.value} and can no longer be {action}",
                field="approval_status",
            )

    async def _guard(
        self,
        descriptor: CategoryDescriptor,
        family_id: str,
        cap: Decimal,
        candidate: Decimal,
        exclude: Optional[RecordRef] = None,
    ) -> Decimal:
        """Guard check on a fresh aggregate; returns the aggregate it used"""
        already = await self.aggregator.already_defined(family_id, exclude)
        try:
            self.guard.check(candidate, already, cap)
        except BudgetExceededError:
            logger.warning(
                "Rejected %s contribution for family %s: cap %s, used %s, candidate %s",
                descriptor.category.value, family_id, cap, already, candidate,
            )
            raise
        return already

    async def _reserve(
        self,
        descriptor: CategoryDescriptor,
        family_id: str,
        cap: Decimal,
        candidate: Decimal,
        already: Decimal,
        prior: Decimal = ZERO,
    ) -> None:
        """
        Atomic ledger reserve of ``candidate - prior``.

        The aggregate read gives the caseworker an exact message; the ledger
        compare-and-swap is what actually stops two concurrent submissions
        from both passing.
        """
        if await self.ledger_repo.get_committed(family_id) is None:
            await self.ledger_repo.open(family_id, already + prior, cap)

        reservation = await self.ledger_repo.try_reserve(family_id, candidate - prior, cap)
        if not reservation.accepted:
            used = reservation.committed_total - prior
            logger.warning(
                "Ledger refused %s contribution for family %s: cap %s, ledger used %s, candidate %s",
                descriptor.category.value, family_id, cap, used, candidate,
            )
            raise BudgetExceededError(cap=cap, already_used=used, candidate=candidate)

    async def _release(self, record: SupportRecord) -> None:
        if await self.ledger_repo.get_committed(record.family_id) is None:
            # Opened from the aggregate, which no longer counts this record
            assessment = await self.assess(record.family_id)
            already = await self.aggregator.already_defined(record.family_id)
            await self.ledger_repo.open(record.family_id, already, assessment.support_cap)
            return
        await self.ledger_repo.release(record.family_id, record.total_pe_contribution)
