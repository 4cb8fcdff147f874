from __future__ import annotations

import os

# In-memory database and a fixed secret before the app modules read settings.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-secret-key-for-repotrack"
os.environ["NOTIFICATIONS_PUSH_ENABLED"] = "false"
os.environ["BUSINESS_TIMEZONE"] = "America/Mexico_City"

from datetime import datetime, timedelta  # noqa: E402
from itertools import count  # noqa: E402
from zoneinfo import ZoneInfo  # noqa: E402

import pytest  # noqa: E402

from repotrack import models  # noqa: E402,F401
from repotrack.database import Base, SessionLocal, engine  # noqa: E402
from repotrack.models import User  # noqa: E402
from repotrack.schemas import PieceIn, ProductIn, RepositionCreate  # noqa: E402
from repotrack.services.notification_sink import NotificationIntent  # noqa: E402
from repotrack.use_cases.common import WorkflowHooks  # noqa: E402
from repotrack.use_cases.reposition_lifecycle import (  # noqa: E402
    approve_reposition_use_case,
    create_reposition_use_case,
)

BUSINESS_TZ = ZoneInfo("America/Mexico_City")


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


class RecordingSink:
    """Collects delivered notifications; can be told to fail for given users."""

    def __init__(self, fail_for: set[int] | None = None) -> None:
        self.delivered: list[NotificationIntent] = []
        self.fail_for = fail_for or set()

    def notify(self, user_id, type, title, message, reposition_id) -> None:
        if user_id in self.fail_for:
            raise RuntimeError(f"push channel down for user {user_id}")
        self.delivered.append(
            NotificationIntent(user_id=user_id, type=type, title=title, message=message, reposition_id=reposition_id)
        )

    def of_type(self, type: str) -> list[NotificationIntent]:
        return [intent for intent in self.delivered if intent.type == type]

    def recipients(self, type: str) -> set[int]:
        return {intent.user_id for intent in self.of_type(type)}

    def clear(self) -> None:
        self.delivered.clear()


@pytest.fixture()
def db_session():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 3, 10, 9, 0, tzinfo=BUSINESS_TZ))


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def hooks(clock, sink) -> WorkflowHooks:
    return WorkflowHooks(now=clock, notifier=sink, transfer_cooldown_minutes=5)


@pytest.fixture()
def make_user(db_session):
    sequence = count(1)

    def _make(area: str, name: str | None = None) -> User:
        n = next(sequence)
        user = User(username=f"{area}-{n}", name=name or f"{area.capitalize()} {n}", area=area, is_active=True)
        db_session.add(user)
        db_session.commit()
        return user

    return _make


@pytest.fixture()
def users(make_user) -> dict[str, User]:
    return {
        "corte": make_user("corte"),
        "bordado": make_user("bordado"),
        "bordado_2": make_user("bordado"),
        "ensamble": make_user("ensamble"),
        "operaciones": make_user("operaciones"),
        "admin": make_user("admin"),
        "envios": make_user("envios"),
        "almacen": make_user("almacen"),
        "diseño": make_user("diseño"),
    }


def reposition_payload(**overrides) -> RepositionCreate:
    data = {
        "type": "repocision",
        "urgencia": "urgente",
        "solicitante_nombre": "Laura Pérez",
        "descripcion_suceso": "Corte desviado en la pieza delantera",
        "modelo_prenda": "Filipina clásica",
        "tela": "Gabardina",
        "color": "Azul marino",
        "tipo_pieza": "Delantero",
        "pieces": [PieceIn(talla="M", cantidad=2), PieceIn(talla="L", cantidad=1, folio_original="OP-1180")],
    }
    data.update(overrides)
    return RepositionCreate(**data)


def product(**overrides) -> ProductIn:
    data = {"modelo_prenda": "Pantalón cargo", "tela": "Drill", "color": "Negro", "tipo_pieza": "Pierna", "consumo_tela": 1.5}
    data.update(overrides)
    return ProductIn(**data)


@pytest.fixture()
def create_reposition(db_session, hooks):
    def _create(creator: User, **overrides):
        return create_reposition_use_case(
            db=db_session,
            data=reposition_payload(**overrides),
            current_user=creator,
            hooks=hooks,
        )

    return _create


@pytest.fixture()
def approved_reposition(db_session, hooks, users, create_reposition):
    """Created by corte and approved by operaciones."""
    reposition = create_reposition(users["corte"])
    approve_reposition_use_case(
        db=db_session,
        reposition_id=reposition.id,
        action="aprobado",
        notes=None,
        current_user=users["operaciones"],
        hooks=hooks,
    )
    hooks.notifier.clear()
    return reposition
