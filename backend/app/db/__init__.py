import importlib
import logging
import os

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from app.config import settings

log = logging.getLogger(__name__)

DATABASE_URL = settings.DATABASE_URL
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, future=True, echo=False, connect_args=_connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# add new model modules here so Base.metadata sees them
MODEL_MODULES = [
    "app.models.folder",
    "app.models.product",
    "app.models.payment",
]


def init_db(reset: bool = False):
    """
    Initialize DB schema and bootstrap the default folders.

    Tables are dropped first when `reset` is true or the RESET_DB env var is
    set to 1/true/yes. Existing rows are otherwise left alone.
    """
    for mod in MODEL_MODULES:
        importlib.import_module(mod)

    env_reset = os.environ.get("RESET_DB", "false").lower() in ("1", "true", "yes")
    if reset or env_reset:
        log.info("Resetting database (drop + create)")
        Base.metadata.drop_all(bind=engine)

    Base.metadata.create_all(bind=engine)

    from app.services.folder_service import FolderService

    s = SessionLocal()
    try:
        FolderService(s).initialize_default_folders()
    finally:
        s.close()
    log.info("Database initialized")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
