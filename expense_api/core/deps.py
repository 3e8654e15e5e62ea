from __future__ import annotations

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from expense_api.core.clock import Clock
from expense_api.core.database import get_db
from expense_api.core.exceptions import NotFoundError
from expense_api import models


def get_current_user(
    x_user_id: int | None = Header(default=None),
    db: Session = Depends(get_db),
) -> models.User:
    """Very lightweight current user resolver.

    Uses the ``X-User-Id`` header when present. Without it, returns the first
    user (creates a demo if none). Tests may override this dependency to
    simulate different users.
    """
    if x_user_id is not None:
        user = (
            db.query(models.User)
            .filter(models.User.id == x_user_id, models.User.is_active.is_(True))
            .first()
        )
        if not user:
            raise NotFoundError("User", x_user_id)
        return user

    user = db.query(models.User).order_by(models.User.id).first()
    if not user:
        user = models.User(email="demo@example.com", is_active=True)
        db.add(user)
        db.commit()
        db.refresh(user)
    return user


def get_clock() -> Clock:
    return Clock()
