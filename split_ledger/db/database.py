from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from split_ledger.core.config import settings

DATABASE_URL = settings.database_url

# Create engine with appropriate connect_args based on database type
if DATABASE_URL.startswith("postgresql"):
    engine = create_engine(DATABASE_URL)
else:
    # SQLite configuration
    engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False})

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
