from sqlmodel import SQLModel, create_engine, Session, select
import os
from dotenv import load_dotenv

from logger import get_logger

# Load env vars from .env for local dev
load_dotenv()

logger = get_logger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("1", "true", "yes")

if DATABASE_URL and "postgres" in DATABASE_URL:
    # Fix Render/Heroku postgres:// -> postgresql://
    if DATABASE_URL.startswith("postgres://"):
        DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

    engine = create_engine(DATABASE_URL, echo=SQL_ECHO)
    logger.info("Using PostgreSQL Database")
else:
    # Fallback to Local SQLite
    sqlite_file_name = os.getenv("SQLITE_FILE", "metal_ledger.db")
    sqlite_url = f"sqlite:///{sqlite_file_name}"
    connect_args = {"check_same_thread": False}
    engine = create_engine(sqlite_url, echo=SQL_ECHO, connect_args=connect_args)
    logger.info("Using Local SQLite Database (%s)", sqlite_file_name)


def seed_default_metals(session: Session):
    # Gold and Silver are system metals, always present
    from models import Metal, default_metals

    existing = {m.id for m in session.exec(select(Metal)).all()}
    added = 0
    for metal in default_metals():
        if metal.id not in existing:
            session.add(metal)
            added += 1
    if added:
        session.commit()
        logger.info("Seeded %d default metals", added)


def create_db_and_tables(db_engine=None):
    db_engine = db_engine or engine
    SQLModel.metadata.create_all(db_engine)
    with Session(db_engine) as session:
        seed_default_metals(session)


def get_session():
    with Session(engine) as session:
        yield session
