"""Shared test helpers (plain functions; fixtures live in conftest.py)."""

from __future__ import annotations

import io
from datetime import datetime, timedelta, timezone

from PIL import Image
from sqlalchemy import select
from sqlalchemy.orm import Session

from folio import models
from folio.auth import create_access_token

BASE_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def at(minutes: int) -> datetime:
    return BASE_TIME + timedelta(minutes=minutes)


def auth_header(username: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(username)}"}


def png_bytes(size: tuple[int, int] = (640, 480), mode: str = "RGBA") -> bytes:
    buf = io.BytesIO()
    color = (200, 30, 30, 255) if mode == "RGBA" else (200, 30, 30)
    Image.new(mode, size, color).save(buf, format="PNG")
    return buf.getvalue()


def tag_names(db: Session) -> list[str]:
    db.commit()
    return list(db.execute(select(models.Tag.name).order_by(models.Tag.name)).scalars())


def orphan_tags(db: Session) -> list[str]:
    """Tags no post references. Always empty when the registry is consistent."""
    db.commit()
    linked = select(models.post_tags.c.tag_id)
    return list(db.execute(select(models.Tag.name).where(models.Tag.id.not_in(linked))).scalars())


def link_count(db: Session) -> int:
    db.commit()
    return len(db.execute(select(models.post_tags)).all())
