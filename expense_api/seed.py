from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from .core.database import init_db, session_scope
from .models import Category, User

logger = logging.getLogger(__name__)

DEMO_EMAIL = "demo@example.com"

# name, icon, color
SYSTEM_CATEGORIES: list[tuple[str, str, str]] = [
    ("Food & Dining", "🍔", "#FF6B6B"),
    ("Transportation", "🚗", "#4ECDC4"),
    ("Housing", "🏠", "#45B7D1"),
    ("Utilities", "💡", "#FFA07A"),
    ("Entertainment", "🎬", "#98D8C8"),
    ("Shopping", "🛒", "#F7DC6F"),
    ("Healthcare", "💊", "#BB8FCE"),
    ("Education", "📚", "#85C1E2"),
    ("Salary", "💰", "#52C41A"),
    ("Investment", "📈", "#1890FF"),
    ("Gifts", "🎁", "#EB2F96"),
    ("Other", "➕", "#8C8C8C"),
]


def seed_defaults(db: Session) -> User:
    """Insert the demo user and the system categories when missing. Idempotent."""
    user = db.query(User).filter_by(email=DEMO_EMAIL).first()
    if not user:
        user = User(email=DEMO_EMAIL, is_active=True)
        db.add(user)
        db.flush()

    existing = {
        name
        for (name,) in db.query(Category.name).filter(Category.is_system.is_(True), Category.user_id.is_(None))
    }
    added = 0
    for name, icon, color in SYSTEM_CATEGORIES:
        if name in existing:
            continue
        db.add(Category(user_id=None, name=name, icon=icon, color=color, is_system=True, is_active=True))
        added += 1
    db.flush()
    if added:
        logger.info("Seeded %s system categories", added)
    return user


def seed() -> None:
    init_db()
    with session_scope() as db:
        seed_defaults(db)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    seed()
