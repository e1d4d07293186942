"""Per-post view counter.

Best-effort: failures are logged and swallowed, and the page view that
triggered them proceeds.
"""

from __future__ import annotations

import logging

from sqlalchemy import update
from sqlalchemy.orm import Session

from .. import models
from ..db import transaction
from ..errors import StorageError

logger = logging.getLogger(__name__)


def increment_views(db: Session, post_id: int) -> bool:
    """Add one view to ``post_id`` in its own short transaction. Returns False on failure."""
    try:
        with transaction(db, "increment views"):
            # Relative update: concurrent increments cannot overwrite each other
            db.execute(
                update(models.Post)
                .where(models.Post.id == post_id)
                .values(views=models.Post.views + 1)
                .execution_options(synchronize_session=False)
            )
    except StorageError as exc:
        logger.warning("Failed to increment views for post %s: %s", post_id, exc)
        return False
    return True
