import os
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from dotenv import load_dotenv

# PUBLIC_INTERFACE
def get_database_url():
    """
    Retrieves the database URL from the environment variable DATABASE_URL.
    """
    load_dotenv()
    db_url = os.getenv("DATABASE_URL")
    if not db_url:
        raise ValueError("DATABASE_URL environment variable not set.")
    return db_url

def _foreign_keys_on(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

# PUBLIC_INTERFACE
def enable_sqlite_foreign_keys(engine):
    """
    SQLite ships with foreign key enforcement off; turn it on for every new
    connection so notes cannot reference a missing user. Other dialects are
    left alone.
    """
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _foreign_keys_on)
    return engine

# PUBLIC_INTERFACE
def make_engine(url: str):
    """Builds an engine; SQLite URLs get thread-sharing and foreign key enforcement."""
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    engine = create_engine(url, future=True, echo=False, pool_pre_ping=True, connect_args=connect_args)
    return enable_sqlite_foreign_keys(engine)

DATABASE_URL = get_database_url()

engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
