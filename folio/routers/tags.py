"""Tag endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from .. import schemas
from ..auth import AuthContext, get_auth_context
from ..deps import get_db
from ..services import tags

router = APIRouter(prefix="/tags", tags=["Tags"])


@router.get("", response_model=list[schemas.TagOption])
def list_tags(
    selected: list[str] = Query(default=[]),
    db: Session = Depends(get_db),
    auth: AuthContext = Depends(get_auth_context),
) -> list[schemas.TagOption]:
    """All tags by name. Names passed as ``selected`` come back flagged."""
    auth.current_username()
    return tags.list_all(db, selected=selected)
