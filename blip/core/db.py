from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from loguru import logger

from blip.core.config import DATABASE_URL

# --- Base (single source of truth) ---
Base = declarative_base()


def _engine_kwargs(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}

    kwargs = {"connect_args": {"check_same_thread": False}}
    # in-memory databases must share one connection across threads
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return kwargs


# --- Engine ---
engine = create_engine(
    DATABASE_URL,
    echo=False,
    future=True,
    **_engine_kwargs(DATABASE_URL),
)

# --- Session factory ---
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    future=True,
)

# --- SQL query logging ---
@event.listens_for(engine, "before_cursor_execute")
def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    logger.debug(f"SQL: {statement} | params={parameters}")


# --- Upserts ---
def _dialect_insert(db: Session):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise RuntimeError(f"Upsert not supported for dialect: {dialect}")
    return insert


def upsert(db: Session, model, values: dict, conflict_on: list[str], update: list[str] | None = None) -> None:
    """
    INSERT ... ON CONFLICT for Postgres and SQLite.

    With no ``update`` columns the existing row is left untouched.
    """
    insert = _dialect_insert(db)
    stmt = insert(model).values(**values)

    if update:
        stmt = stmt.on_conflict_do_update(
            index_elements=conflict_on,
            set_={col: stmt.excluded[col] for col in update},
        )
    else:
        stmt = stmt.on_conflict_do_nothing(index_elements=conflict_on)

    db.execute(stmt)


# --- FastAPI dependency ---
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
