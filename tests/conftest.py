"""
conftest.py — Shared Test Fixtures for Leadflow

Provides an in-memory SQLite database, fake collaborators (directory, broker,
CRM), an AppState wired to them, and a FastAPI TestClient with the DB and
state dependencies overridden.

Business Rules:
- All tests run against an isolated in-memory DB (no prod data risk)
- Collaborators are AsyncMocks; no test ever makes a network call
- Each test function gets fresh tables, caches and breaker
- The client fixture replaces spawn_pipeline with a MagicMock so HTTP tests
  never race a background pipeline on the shared SQLite connection

Called by: all test files via pytest autodiscovery
Depends on: leadflow.models (Base), leadflow.database (get_db), leadflow.dependencies
"""

import os

os.environ["TESTING"] = "1"  # Must be set before importing leadflow modules
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["WEBHOOK_SECRET"] = ""
os.environ["CACHE_BACKEND"] = "memory"

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from leadflow.app_state import AppState
from leadflow.cache.recency import RecencySuppressor
from leadflow.cache.response_cache import ResponseCache
from leadflow.circuit_breaker import CircuitBreaker
from leadflow.config import settings
from leadflow.errors import DatabaseError
from leadflow.models import Base

# ── In-memory SQLite engine ──────────────────────────────────────────

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@event.listens_for(engine, "connect")
def _enable_fk(dbapi_conn, _):
    """SQLite ignores FKs by default — turn them on."""
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


PHONE_CPF = "12345678901"
EMAIL_CPF = "98765432100"


def make_broker_payload(cpf: str = PHONE_CPF, name: str = "Maria da Silva") -> dict:
    return {
        "DadosBasicos": {
            "nome": name,
            "cpf": cpf,
            "dataNascimento": "15/03/1985",
            "sexo": "F - FEMININO",
            "nomeMae": "Ana da Silva",
        },
        "DadosEconomicos": {
            "renda": "3500,00",
            "score": {"scoreCSBA": "720", "scoreCSBAFaixaRisco": "BAIXO RISCO"},
            "poderAquisitivo": {
                "poderAquisitivoDescricao": "MEDIO",
                "faixaPoderAquisitivo": "De R$ 1630 até R$ 4082",
            },
        },
        "emails": [
            {"email": "Maria@Example.com", "prioridade": "1", "qualidade": "BOM"},
            {"email": "maria.silva@example.org", "prioridade": "2"},
        ],
        "telefones": [
            {"telefone": "(11) 98765-4321", "tipo": "MOVEL", "whatsapp": "SIM"},
            {"telefone": "1133334444", "tipo": "FIXO", "whatsapp": "NAO"},
        ],
        "enderecos": [
            {
                "tipoLogradouro": "RUA",
                "logradouro": "das Flores",
                "logradouroNumero": "100",
                "bairro": "Centro",
                "cidade": "São Paulo",
                "uf": "SP",
                "cep": "01001-000",
            },
            {
                "tipoLogradouro": "AV",
                "logradouro": "Paulista",
                "logradouroNumero": "2000",
                "bairro": "Bela Vista",
                "cidade": "São Paulo",
                "uf": "SP",
                "cep": "01310-200",
                "relacao": "CONJUGE",
            },
        ],
    }


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def db_session():
    """Create all tables, yield a session, then tear down."""
    Base.metadata.create_all(bind=engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def session_factory():
    return TestSessionLocal


@pytest.fixture()
def broker_payload():
    """Factory for realistic broker payloads."""
    return make_broker_payload


@pytest.fixture()
def directory():
    """Directory where phone and email both resolve to the same CPF."""
    d = MagicMock()
    d.lookup_by_phone = AsyncMock(return_value=PHONE_CPF)
    d.lookup_by_email = AsyncMock(return_value=PHONE_CPF)
    return d


@pytest.fixture()
def broker():
    b = MagicMock()
    b.fetch = AsyncMock(side_effect=lambda cpf: make_broker_payload(cpf))
    return b


@pytest.fixture()
def crm():
    c = MagicMock()
    c.send_message = AsyncMock(return_value=None)
    return c


@pytest.fixture()
def store_breaker():
    return CircuitBreaker("store", fail_max=5, reset_timeout=60, failure_types=(DatabaseError,))


@pytest.fixture()
def app_state(directory, broker, crm, store_breaker) -> AppState:
    """AppState wired to the fake collaborators and the test DB."""
    return AppState(
        settings=settings,
        session_factory=TestSessionLocal,
        directory=directory,
        broker=broker,
        crm=crm,
        recency=RecencySuppressor(cooldown_seconds=60, ttl_seconds=300),
        response_cache=ResponseCache(ttl_seconds=3600, max_entries=1000),
        breaker=store_breaker,
    )


@pytest.fixture()
def client(db_session, app_state, monkeypatch) -> TestClient:
    """FastAPI TestClient with DB and AppState overridden.

    spawn_pipeline is a MagicMock: HTTP tests assert on hand-off, pipeline
    tests drive the orchestrator directly.
    """
    from leadflow.database import get_db
    from leadflow.dependencies import get_state
    from leadflow.main import app

    monkeypatch.setattr(app_state, "spawn_pipeline", MagicMock())

    def _override_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_db
    app.dependency_overrides[get_state] = lambda: app_state

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
