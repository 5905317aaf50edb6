"""Seed the development database with a demo client and a week of work."""

from app.backend.src.db import get_engine, session_scope
from app.backend.src.db.base import Base
from app.backend.src.models import *  # noqa
from app.backend.src.services.seed import seed_development_client


def main() -> None:
    """Create tables (if needed) and ensure a demo client with unbilled work exists."""

    engine = get_engine()
    Base.metadata.create_all(bind=engine)

    with session_scope() as session:
        result = seed_development_client(session)
        session.flush()

        print("✅ Development data ready!")
        client_status = "created" if result.client_created else "unchanged"
        print(
            f"Client ({client_status}): {result.client.name} [id={result.client.id}, "
            f"rate={result.client.hourly_rate}]"
        )
        print(f"Sessions added: {result.sessions_created}, expenses added: {result.expenses_created}")
        print()
        print("Generate this week's invoice with POST /api/invoices/generate {\"period\": \"week\"}.")


if __name__ == "__main__":
    main()
