from decimal import Decimal

import pytest

from fdp_support.domain.errors import StaleRecordError, TransientStoreError
from fdp_support.domain.models import (
    ApprovalStatus,
    CostLineInput,
    RecordRef,
    SupportCategory,
    SupportRequest,
    get_descriptor,
)
from fdp_support.domain.services.contribution_calculator import ContributionCalculator
from fdp_support.domain.services.poverty_classifier import assess_family
from fdp_support.infrastructure.db.repositories import (
    ApprovalLogRepository,
    BaselineRepository,
    LedgerRepository,
    SupportRecordRepository,
)

CAP = Decimal("468000")


def monthly_request(line: str, amount: str, months: int = 1) -> SupportRequest:
    return SupportRequest(cost_lines={line: CostLineInput(total_cost=Decimal(amount), months=months)})


async def create_record(session, policy, category: str, line: str, amount: str, family_id: str = "FDP-001"):
    descriptor = get_descriptor(category)
    baseline = await BaselineRepository(session).get(family_id)
    request = monthly_request(line, amount)
    breakdown = ContributionCalculator().calculate(descriptor, request.cost_lines)
    return await SupportRecordRepository(session).create(
        descriptor.category, family_id, assess_family(policy, baseline), baseline, breakdown, request
    )


@pytest.mark.asyncio
@pytest.mark.integration
async def test_baseline_repository(db_session, add_family):
    await add_family("FDP-9", household_income="24000", member_count=3, area_type="peri urban")

    baseline = await BaselineRepository(db_session).get("FDP-9")
    assert baseline.per_capita_income == Decimal("8000")
    assert baseline.area_type.value == "Peri-Urban"
    assert await BaselineRepository(db_session).get("missing") is None


@pytest.mark.asyncio
@pytest.mark.integration
async def test_aggregate_spans_categories_and_skips_rejected_and_inactive(db_session, add_family, policy):
    await add_family()
    repo = SupportRecordRepository(db_session)

    health = await create_record(db_session, policy, "health", "health", "1000")
    await create_record(db_session, policy, "food", "food", "2000")
    rejected = await create_record(db_session, policy, "housing", "habitat", "4000")
    inactive = await create_record(db_session, policy, "food", "food", "8000")
    await repo.set_status(SupportCategory.HOUSING, rejected.id, ApprovalStatus.REJECTED, None, "mgr", expected_version=1)
    await repo.deactivate(SupportCategory.FOOD, inactive.id, "officer", expected_version=1)
    await db_session.commit()

    assert await repo.sum_pe_contribution("FDP-001") == Decimal("3000")
    assert await repo.sum_pe_contribution(
        "FDP-001", RecordRef(SupportCategory.HEALTH, health.id)
    ) == Decimal("2000")
    # Same id in another category is not excluded
    assert await repo.sum_pe_contribution(
        "FDP-001", RecordRef(SupportCategory.EDUCATION, health.id)
    ) == Decimal("3000")
    assert await repo.sum_pe_contribution("OTHER") == Decimal("0")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_record_roundtrip(db_session, add_family, policy):
    await add_family()
    created = await create_record(db_session, policy, "health", "health", "1500")
    await db_session.commit()

    fetched = await SupportRecordRepository(db_session).get(SupportCategory.HEALTH, created.id)
    assert fetched.total_pe_contribution == Decimal("1500")
    assert fetched.poverty_level == "Level -4"
    assert fetched.max_social_support == Decimal("468000")
    assert fetched.approval_status is ApprovalStatus.PENDING
    assert fetched.version == 1
    assert fetched.cost_lines[0]["name"] == "health"

    listed = await SupportRecordRepository(db_session).list_for_family(SupportCategory.HEALTH, "FDP-001")
    assert [r.id for r in listed] == [created.id]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_concurrent_edit_is_stale(session_maker, add_family, policy):
    await add_family()
    async with session_maker() as session:
        record = await create_record(session, policy, "food", "food", "100")
        await session.commit()

    descriptor = get_descriptor("food")
    request = monthly_request("food", "200")
    breakdown = ContributionCalculator().calculate(descriptor, request.cost_lines)

    async with session_maker() as first, session_maker() as second:
        baseline = await BaselineRepository(first).get("FDP-001")
        assessment = assess_family(policy, baseline)
        first_repo = SupportRecordRepository(first)
        read = await first_repo.get(SupportCategory.FOOD, record.id, for_update=True)

        winner = await SupportRecordRepository(second).update(
            SupportCategory.FOOD, record.id, assessment, breakdown, request, expected_version=read.version
        )
        await second.commit()
        assert winner.version == 2

        with pytest.raises(StaleRecordError) as exc:
            await first_repo.update(
                SupportCategory.FOOD, record.id, assessment, breakdown, request, expected_version=read.version
            )
        assert exc.value.details["expected_version"] == 1
        assert exc.value.details["actual_version"] == 2


@pytest.mark.asyncio
@pytest.mark.integration
async def test_stale_status_change_is_refused(db_session, add_family, policy):
    await add_family()
    record = await create_record(db_session, policy, "health", "health", "100")
    repo = SupportRecordRepository(db_session)
    await repo.set_status(SupportCategory.HEALTH, record.id, ApprovalStatus.REJECTED, None, "mgr", expected_version=1)

    with pytest.raises(StaleRecordError):
        await repo.deactivate(SupportCategory.HEALTH, record.id, "officer", expected_version=1)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_ledger_reserve_is_conditional(db_session):
    ledger = LedgerRepository(db_session)
    assert await ledger.get_committed("FDP-001") is None

    await ledger.open("FDP-001", Decimal("400000"), CAP)

    refused = await ledger.try_reserve("FDP-001", Decimal("70000"), CAP)
    assert not refused.accepted
    assert refused.committed_total == Decimal("400000")

    exact = await ledger.try_reserve("FDP-001", Decimal("68000"), CAP)
    assert exact.accepted
    assert exact.committed_total == CAP

    lowered = await ledger.try_reserve("FDP-001", Decimal("-100000"), CAP)
    assert lowered.accepted
    assert lowered.committed_total == Decimal("368000")

    assert await ledger.release("FDP-001", Decimal("68000")) == Decimal("300000")
    assert await ledger.reset("FDP-001", Decimal("5"), CAP) == Decimal("5")
    assert await ledger.get_committed("FDP-001") == Decimal("5")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_ledger_reset_creates_missing_row(db_session):
    ledger = LedgerRepository(db_session)
    await ledger.reset("FDP-NEW", Decimal("1234"), CAP)
    assert await ledger.get_committed("FDP-NEW") == Decimal("1234")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_ledger_double_open_is_transient(db_session):
    ledger = LedgerRepository(db_session)
    await ledger.open("FDP-001", Decimal("0"), CAP)
    await db_session.commit()

    with pytest.raises(TransientStoreError) as exc:
        await ledger.open("FDP-001", Decimal("0"), CAP)
    assert exc.value.details["retryable_read"] is True
    await db_session.rollback()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_approval_log(db_session, add_family, policy):
    await add_family()
    record = await create_record(db_session, policy, "health", "health", "100")
    log = ApprovalLogRepository(db_session)

    await log.add(record, ApprovalStatus.PENDING, ApprovalStatus.APPROVED, "ok", "mgr")
    await db_session.commit()

    entries = await log.list_entries(family_id="FDP-001")
    assert len(entries) == 1
    assert entries[0].category is SupportCategory.HEALTH
    assert entries[0].to_status is ApprovalStatus.APPROVED
    assert entries[0].action_by == "mgr"
    assert await log.list_entries(family_id="OTHER") == []
