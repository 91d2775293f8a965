from decimal import Decimal
from pathlib import Path
from typing import AsyncGenerator

import pytest
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from fdp_support.infrastructure.db.database import Base, get_db
from fdp_support.infrastructure.db.models import FamilyBaselineModel
from fdp_support.api.errors import register_exception_handlers
from fdp_support.api.routes import families, support, approval, config as config_routes
from fdp_support.domain.services.policy_config_engine import PolicyConfigEngine
import fdp_support.main as app_main

CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"


@pytest.fixture()
def policy_engine() -> PolicyConfigEngine:
    engine = PolicyConfigEngine(CONFIG_DIR)
    engine.load_all()
    return engine


@pytest.fixture()
def policy(policy_engine):
    return policy_engine.policy


@pytest.fixture()
async def db_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_maker(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture()
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest.fixture()
def add_family(db_session):
    """Insert a baseline row; defaults give Level -4 (Rural, zero income)"""
    async def _add(
        family_id: str = "FDP-001",
        household_income: str = "0",
        member_count: int = 5,
        area_type: str = "Rural",
        head_name: str = "Test Head",
    ):
        db_session.add(
            FamilyBaselineModel(
                family_id=family_id,
                head_name=head_name,
                household_income=Decimal(household_income),
                member_count=member_count,
                area_type=area_type,
            )
        )
        await db_session.commit()
        return family_id

    return _add


@pytest.fixture()
async def app(db_session, policy_engine) -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(families.router, prefix="/api/v1/families", tags=["Families"])
    app.include_router(support.router, prefix="/api/v1/support", tags=["Social Support"])
    app.include_router(approval.router, prefix="/api/v1/approval", tags=["Approval"])
    app.include_router(config_routes.router, prefix="/api/v1/config", tags=["Config"])

    async def override_get_db():
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db

    # Routes read the policy from the main module, as after startup
    app_main.policy_engine = policy_engine

    return app


@pytest.fixture()
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
