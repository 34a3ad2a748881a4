"""
Polaczenie z baza (PostgreSQL w produkcji, SQLite lokalnie i w testach).
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from marketplace.utils.settings import DATABASE_URL


def build_engine(url: str):
    if url.startswith("sqlite"):
        # sesje z roznych watkow (celery, uvicorn workers)
        return create_engine(url, connect_args={"check_same_thread": False})
    return create_engine(
        url,
        pool_pre_ping=True,  # sprawdz polaczenie przed uzyciem
        pool_size=10,
        max_overflow=20,
    )


engine = build_engine(DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """
    Dependency dla routerow FastAPI:
        def endpoint(db: Session = Depends(get_db)): ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    # import modeli rejestruje tabele w Base.metadata
    import marketplace.data.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
