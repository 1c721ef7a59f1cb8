"""
Transaction boundary for the service layer.

Routes never commit; services wrap each unit of work in ``transaction()``:

    with transaction():
        db.session.add(DistributorCredit(...))

The block commits on exit and rolls back (then re-raises) on any error.
"""

import logging
from contextlib import contextmanager

from pegasus_admin import db

logger = logging.getLogger(__name__)


@contextmanager
def transaction():
    try:
        yield db.session
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error("Transaction rolled back: %s", e)
        raise


__all__ = ["transaction"]
