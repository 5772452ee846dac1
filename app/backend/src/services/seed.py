"""Utilities for seeding development data."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.backend.src.models import Client, ClientConfig, FilingPeriod, User

DEFAULT_USER_EMAIL = "demo.contador@example.com"
DEFAULT_USER_NAME = "Demo Contador"
DEFAULT_CLIENT_NAME = "Cliente Demo S.A."
DEFAULT_CLIENT_TAX_ID = "30-71234567-8"


@dataclass
class SeedResult:
    """Information about the seeded user, client and filing period."""

    user: User
    client: Client
    filing_period: FilingPeriod
    user_created: bool
    client_created: bool
    period_created: bool


def seed_development_data(
    session: Session,
    *,
    year: int,
    month: int,
    user_email: str = DEFAULT_USER_EMAIL,
    user_name: str = DEFAULT_USER_NAME,
    client_name: str = DEFAULT_CLIENT_NAME,
    tax_id: str = DEFAULT_CLIENT_TAX_ID,
) -> SeedResult:
    """Ensure a demo user owning one client with an open filing period exists.

    Existing records are reused so the command can run repeatedly.
    """

    user = session.query(User).filter(User.email == user_email).one_or_none()
    user_created = False
    if user is None:
        user = User(email=user_email, full_name=user_name)
        session.add(user)
        session.flush()
        user_created = True

    client = (
        session.query(Client)
        .filter(Client.owner_user_id == user.id, Client.name == client_name)
        .one_or_none()
    )
    client_created = False
    if client is None:
        client = Client(owner_user_id=user.id, name=client_name, tax_id=tax_id)
        session.add(client)
        session.flush()
        session.add(ClientConfig(client_id=client.id, prefill_values={}))
        client_created = True

    period = (
        session.query(FilingPeriod)
        .filter(
            FilingPeriod.client_id == client.id,
            FilingPeriod.year == year,
            FilingPeriod.month == month,
        )
        .one_or_none()
    )
    period_created = False
    if period is None:
        period = FilingPeriod(client_id=client.id, year=year, month=month)
        session.add(period)
        session.flush()
        period_created = True

    return SeedResult(
        user=user,
        client=client,
        filing_period=period,
        user_created=user_created,
        client_created=client_created,
        period_created=period_created,
    )


__all__ = ["seed_development_data", "SeedResult"]
