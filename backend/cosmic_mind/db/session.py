from cosmic_mind.db.base import engine, SessionLocal, Base
import logging

logger = logging.getLogger(__name__)


def get_db():
    """Dependency to get database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables(bind=None):
    """Create database tables for every registered model"""
    # Import all models to ensure they're registered
    from cosmic_mind.models import user, reminder, content, share_link  # noqa: F401

    try:
        Base.metadata.create_all(bind=bind or engine)
        logger.info("Database tables created successfully")
    except Exception as e:
        logger.error(f"Error creating tables: {e}")
        raise
