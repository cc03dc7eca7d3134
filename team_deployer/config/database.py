"""Engine and session factory for the deployer's database."""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from team_deployer.config.settings import PG_DSN

# Connections are checked before use so a dropped connection surfaces as a fresh one
engine = create_engine(PG_DSN, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """FastAPI dependency yielding one session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
