"""Seed the development database with a demo user, client and filing period."""

from datetime import date

from app.backend.src.db import get_engine, session_scope
from app.backend.src.models.base import Base
from app.backend.src.services.seed import seed_development_data


def _status(created: bool) -> str:
    return "created" if created else "unchanged"


def main() -> None:
    """Create tables (if needed) and ensure the demo records exist."""

    engine = get_engine()
    Base.metadata.create_all(bind=engine)

    today = date.today()
    with session_scope() as session:
        result = seed_development_data(session, year=today.year, month=today.month)
        session.flush()

        print("Development data ready!")
        print(
            f"User ({_status(result.user_created)}): {result.user.full_name} "
            f"<{result.user.email}> [id={result.user.id}]"
        )
        print(
            f"Client ({_status(result.client_created)}): {result.client.name} "
            f"[id={result.client.id}]"
        )
        print(
            f"Filing period ({_status(result.period_created)}): "
            f"{result.filing_period.year:04d}-{result.filing_period.month:02d} "
            f"[id={result.filing_period.id}]"
        )


if __name__ == "__main__":
    main()
