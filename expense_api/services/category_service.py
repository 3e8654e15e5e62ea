from __future__ import annotations

import logging

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from expense_api import models, schemas
from expense_api.core.exceptions import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class CategoryService:
    """Categories visible to a user: the shared system set plus the user's own."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _visible(self, user_id: int):
        return self.db.query(models.Category).filter(
            or_(models.Category.is_system.is_(True), models.Category.user_id == user_id)
        )

    def list(self, user_id: int, include_inactive: bool = False) -> list[models.Category]:
        query = self._visible(user_id)
        if not include_inactive:
            query = query.filter(models.Category.is_active.is_(True))
        return query.order_by(models.Category.is_system.desc(), models.Category.name).all()

    def get(self, category_id: int, user_id: int) -> models.Category:
        category = self._visible(user_id).filter(models.Category.id == category_id).first()
        if not category:
            raise NotFoundError("Category", category_id)
        return category

    def require_usable(self, category_id: int, user_id: int) -> models.Category:
        """Return the category when it can be attached to new records."""
        category = self.get(category_id, user_id)
        if not category.is_active:
            raise ValidationError(f"Category '{category.name}' is inactive")
        return category

    def _ensure_unique_name(self, user_id: int, name: str, exclude_id: int | None = None) -> None:
        query = self.db.query(models.Category.id).filter(
            models.Category.user_id == user_id,
            func.lower(models.Category.name) == name.lower(),
        )
        if exclude_id is not None:
            query = query.filter(models.Category.id != exclude_id)
        if query.first() is not None:
            raise ConflictError(f"Category '{name}' already exists")

    def _get_owned(self, category_id: int, user_id: int) -> models.Category:
        category = self.get(category_id, user_id)
        if category.is_system:
            raise ValidationError("System categories cannot be modified")
        return category

    def create(self, payload: schemas.CategoryCreate, user_id: int) -> models.Category:
        self._ensure_unique_name(user_id, payload.name)
        category = models.Category(
            user_id=user_id,
            name=payload.name,
            icon=payload.icon,
            color=payload.color,
            is_system=False,
            is_active=True,
        )
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        logger.info("Created category %s for user %s", category.id, user_id)
        return category

    def update(self, category_id: int, payload: schemas.CategoryUpdate, user_id: int) -> models.Category:
        category = self._get_owned(category_id, user_id)
        data = payload.model_dump(exclude_unset=True)
        if data.get("name") is not None:
            self._ensure_unique_name(user_id, data["name"], exclude_id=category.id)
        for field, value in data.items():
            if value is None and field in ("name", "is_active"):
                continue
            setattr(category, field, value)
        self.db.commit()
        self.db.refresh(category)
        return category

    def delete(self, category_id: int, user_id: int) -> None:
        category = self._get_owned(category_id, user_id)
        for model in (models.Transaction, models.Budget, models.RecurringRule):
            in_use = self.db.query(model.id).filter(model.category_id == category.id).first()
            if in_use is not None:
                raise ConflictError(f"Category '{category.name}' is in use and cannot be deleted")
        self.db.delete(category)
        self.db.commit()
        logger.info("Deleted category %s for user %s", category_id, user_id)
