import pytest
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from treasury_reconciliation.database.models import Base
from treasury_reconciliation.models.enums import CutoffPolicy
from treasury_reconciliation.models.schedule import RecurringDueSchedule
from treasury_reconciliation.services.ledger_provider import InMemoryLedgerProvider, SqlLedgerProvider
from treasury_reconciliation.services.treasury_service import TreasuryService

from tests import factories
from tests.constants import MONTHLY_FEE


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


# --- Schedules ---

@pytest.fixture
def monthly_schedule() -> RecurringDueSchedule:
    """3000 a month, March to December, billed up to the current month."""
    return RecurringDueSchedule(
        amount_per_period=MONTHLY_FEE,
        first_period=3,
        last_period=12,
        cutoff_policy=CutoffPolicy.CURRENT_PERIOD,
    )

@pytest.fixture
def full_year_schedule() -> RecurringDueSchedule:
    """Same fee, but the whole billing year is owed up front."""
    return RecurringDueSchedule(
        amount_per_period=MONTHLY_FEE,
        first_period=3,
        last_period=12,
        cutoff_policy=CutoffPolicy.FULL_YEAR,
    )


# --- Database ---

@pytest.fixture
async def db_session(anyio_backend):
    """
    An in-memory SQLite database with the treasury tables created.
    The factories write through this session; each test gets a fresh database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        factories.test_db_session = session
        yield session
        factories.test_db_session = None

    await engine.dispose()


# --- Providers & Services ---

@pytest.fixture
def sql_provider(db_session, monthly_schedule) -> SqlLedgerProvider:
    return SqlLedgerProvider(db_session, default_schedule=monthly_schedule)

@pytest.fixture
def memory_provider() -> InMemoryLedgerProvider:
    return InMemoryLedgerProvider()

@pytest.fixture
def treasury_service(memory_provider, monthly_schedule) -> TreasuryService:
    return TreasuryService(memory_provider, schedule=monthly_schedule)
