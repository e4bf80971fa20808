from contextlib import contextmanager
from sqlalchemy.orm import Session
from gymdesk.core.exceptions import GymDeskError
from gymdesk.core.logging_config import get_logger

logger = get_logger("db_transaction")


@contextmanager
def db_transaction(db: Session, operation_name: str = "operation"):
    """Run a block of writes as one atomic unit.

    Commits when the block finishes, rolls back everything on any exception
    and re-raises it. Business-rule errors are logged at WARNING, anything
    else at ERROR with the traceback.
    """
    try:
        yield db
        db.commit()
    except GymDeskError as e:
        db.rollback()
        logger.warning(f"{operation_name} rolled back: {e.message}")
        raise
    except Exception as e:
        db.rollback()
        logger.error(f"{operation_name} rolled back: {str(e)}", exc_info=True)
        raise
