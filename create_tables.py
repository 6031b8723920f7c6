"""Create every table from model metadata. Alembic still tracks revisions."""
from app.db.session import engine
from app.db.base import Base
import app.models  # noqa: F401  (registers every table on Base.metadata)

print("Creating database tables...")
Base.metadata.create_all(bind=engine)
print("Tables created: " + ", ".join(sorted(Base.metadata.tables)))
