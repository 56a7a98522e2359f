"""Shared pytest fixtures for the EventDesk API test suite."""

import os

# Must be set before the app (and its engine) is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.pop("RESEND_API_KEY", None)

from datetime import date, datetime  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from eventdesk.database import Base, SessionLocal, engine  # noqa: E402
from eventdesk.main import app  # noqa: E402
from eventdesk.models import Event, EventSettings, Registration, TeamMember, TicketType  # noqa: E402
from eventdesk.security_utils import create_jwt_token  # noqa: E402


@pytest.fixture(autouse=True)
def tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(tables):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
async def client() -> AsyncClient:
    """Async test client that talks directly to the ASGI app (no network required)."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://testserver",
    ) as ac:
        yield ac


@pytest.fixture
def admin(db) -> TeamMember:
    member = TeamMember(email="admin@example.com", name="Asha Admin", role="admin", event_ids=[])
    db.add(member)
    db.commit()
    db.refresh(member)
    return member


@pytest.fixture
def auth_headers(admin) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_jwt_token({'sub': admin.id})}"}


@pytest.fixture
def event(db) -> Event:
    event = Event(
        name="Cardiology Summit 2026",
        slug="cardiology-summit-2026",
        status="active",
        start_date=date(2026, 1, 12),
        end_date=date(2026, 1, 14),
        venue_name="Convention Centre",
        city="Pune",
    )
    event.settings = EventSettings()
    db.add(event)
    db.commit()
    db.refresh(event)
    return event


@pytest.fixture
def ticket(db, event) -> TicketType:
    ticket = TicketType(
        event_id=event.id,
        name="Delegate",
        price=1000,
        tax_percentage=18,
        status="active",
        quantity_total=100,
    )
    db.add(ticket)
    db.commit()
    db.refresh(ticket)
    return ticket


@pytest.fixture
def make_registration(db, event, ticket):
    counter = {"n": 0}

    def _make(**overrides) -> Registration:
        counter["n"] += 1
        values = {
            "registration_number": f"REG-TEST-{counter['n']:04d}",
            "event_id": event.id,
            "ticket_type_id": ticket.id,
            "attendee_name": f"Attendee {counter['n']}",
            "attendee_email": f"attendee{counter['n']}@example.com",
            "status": "confirmed",
            "payment_status": "completed",
            "total_amount": 1180,
            "confirmed_at": datetime.utcnow(),
        }
        values.update(overrides)
        registration = Registration(**values)
        db.add(registration)
        db.commit()
        db.refresh(registration)
        return registration

    return _make
