"""
Transaction helpers for the OTP tables (SQLAlchemy)
Every store mutation commits on its own so that a consumed or invalidated
code is durable before the caller moves on to the next step.
"""
from sqlalchemy.orm import Session
from typing import Callable
from functools import wraps
import logging

logger = logging.getLogger(__name__)


def atomic_transaction(func: Callable) -> Callable:
    """
    Decorator that commits on success and rolls back on failure

    Usage:
        @atomic_transaction
        def my_db_function(db: Session, ...):
            # Your database operations here
            pass

    The decorated function must accept 'db: Session' as first parameter
    """
    @wraps(func)
    def wrapper(db: Session, *args, **kwargs):
        try:
            result = func(db, *args, **kwargs)
            db.commit()
            logger.debug(f"✅ Transaction committed: {func.__name__}")
            return result

        except Exception as e:
            db.rollback()
            logger.error(f"❌ Transaction rolled back: {func.__name__} - Error: {e!r}")
            raise

    return wrapper


class TransactionContext:
    """
    Context manager for explicit transaction control

    Usage:
        with TransactionContext(db) as tx:
            tx.session.query(OtpCode).filter(...).delete()
            # Transaction commits automatically on context exit
            # Or rolls back if exception occurs
    """

    def __init__(self, session: Session):
        self.session = session

    def __enter__(self):
        logger.debug("🔄 Starting transaction context")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.session.rollback()
            logger.error(f"❌ Transaction rolled back due to: {exc_val!r}")
            return False  # Re-raise exception
        self.session.commit()
        logger.debug("✅ Transaction committed successfully")
        return False
