"""Initialize the database tables."""

from backoffice.core import models  # noqa: F401
from backoffice.core.database import Base, engine

print("Creating database tables...")
Base.metadata.create_all(bind=engine)
print("Tables created successfully!")
