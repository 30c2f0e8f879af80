"""
Database initialization script.

Run this script to create the users, notes and provider_accounts tables.
"""
from notable_database.db import engine
from notable_database.models import Base

# PUBLIC_INTERFACE
def init_db(bind=None):
    """Initializes the database by creating all tables if they do not exist."""
    Base.metadata.create_all(bind=bind or engine)

if __name__ == "__main__":
    init_db()
    print("Database tables created successfully.")
