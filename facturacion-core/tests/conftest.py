"""
Configuración central de pytest y fixtures compartidas para todos los tests.

Proporciona:
- Base de datos SQLite en memoria compartida por todos los hilos
- Sesión HTTP falsa que simula la API de Numrot
- Fábricas de clientes Numrot y de documentos OpenETL
- Cliente HTTP de prueba con dependencias sobrescritas
"""
import os
from typing import List, Optional

# La configuración se lee al importar app.core.config
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("AUDIT_ENABLED", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.base import Base
from app.db.session import get_db
from app.core.dependencies import get_acquirer_lookup, get_dane_client, get_numrot_client, get_provider_lookup
from app.services.acquirer_lookup import SqlAcquirerLookup, SqlProviderLookup
from app.services.dane_client import DaneClient
from app.services.numrot import NumrotClient
from app.services.numrot.auth import AuthManager
from app.services.numrot.dispatch import DispatchEngine
from app.services.numrot.limiter import ConcurrencyLimiter
from app.services.numrot.transformer import DocumentTransformer, TransformerConfig

from fakes import BASE_URL, DANE_URL, FakeSession, build_document


# ==================== UPSTREAM FALSO ====================

@pytest.fixture
def fake_session():
    session = FakeSession()
    session.add("POST", "/v2/api/Token", body="test-token")
    return session


@pytest.fixture
def make_client(fake_session):
    """Fábrica de NumrotClient sobre la sesión falsa, sin rate limiter ni breaker por defecto."""
    created: List[NumrotClient] = []

    def _make(*, acquirers=None, engine=None, config: Optional[TransformerConfig] = None,
              key: str = "key", secret: str = "secret", timeout: float = 5,
              retry_delays=(0.01, 0.02, 0.04), audit=None, **engine_kwargs) -> NumrotClient:
        auth = AuthManager(BASE_URL, "user", "pass", ttl=3600, session=fake_session, audit=audit)
        if engine is None:
            engine_kwargs.setdefault("concurrency_limiter", ConcurrencyLimiter(5))
            engine = DispatchEngine(**engine_kwargs)
        client = NumrotClient(
            BASE_URL,
            auth,
            fake_session,
            key=key,
            secret=secret,
            transformer=DocumentTransformer(config=config, acquirers=acquirers),
            engine=engine,
            timeout=timeout,
            retry_delays=retry_delays,
            audit=audit,
        )
        created.append(client)
        return client

    yield _make

    for client in created:
        client.close()


@pytest.fixture
def numrot_client(make_client):
    return make_client()


@pytest.fixture
def make_document():
    return build_document


# ==================== BASE DE DATOS ====================

@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture
def db(session_factory):
    """Sesión de base de datos para pruebas sobre SQLite en memoria."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def acquirer_lookup(session_factory):
    return SqlAcquirerLookup(session_factory)


@pytest.fixture
def provider_lookup(session_factory):
    return SqlProviderLookup(session_factory)


@pytest.fixture
def dane_client(fake_session):
    """DANE sobre la sesión falsa; sin rutas registradas responde 404."""
    return DaneClient(DANE_URL, session=fake_session)


# ==================== API ====================

@pytest.fixture
def client(session_factory, acquirer_lookup, provider_lookup, dane_client, make_client):
    """Cliente HTTP con BD en memoria y Numrot falso."""
    numrot_client = make_client(acquirers=acquirer_lookup)

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_acquirer_lookup] = lambda: acquirer_lookup
    app.dependency_overrides[get_provider_lookup] = lambda: provider_lookup
    app.dependency_overrides[get_dane_client] = lambda: dane_client
    app.dependency_overrides[get_numrot_client] = lambda: numrot_client
    yield TestClient(app)
    app.dependency_overrides.clear()


# ==================== CONFIGURACIÓN DE PYTEST ====================

def pytest_configure(config):
    """Configuración inicial de pytest.

    Define marcadores personalizados para categorizar tests.
    """
    config.addinivalue_line(
        "markers",
        "integration: pruebas de integración (API + BD en memoria)"
    )
    config.addinivalue_line(
        "markers",
        "unit: pruebas unitarias (pueden usar dobles de prueba)"
    )
    config.addinivalue_line(
        "markers",
        "slow: pruebas que tardan más tiempo"
    )
