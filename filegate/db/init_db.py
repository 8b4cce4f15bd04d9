from filegate.db.base import Base
from filegate.db.session import engine


def init_db(bind=None) -> None:
    """Create missing tables (content_records, delivery_tickets, source_posts)."""
    import filegate.models  # noqa: F401  (register models on Base.metadata)

    Base.metadata.create_all(bind=bind or engine)
