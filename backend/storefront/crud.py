# storefront/crud.py
import logging
import math
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models, schemas
from .errors import NotFoundError, StoreError, ValidationError

logger = logging.getLogger(__name__)

MAX_LIMIT = 100


@dataclass
class ProductFilter:
    category: Optional[str] = None
    featured: bool = False
    discounted: bool = False
    include_inactive: bool = False
    limit: Any = None


def parse_limit(raw) -> Optional[int]:
    """
    Turn a requested limit into min(n, 100), or None when it is not a
    positive integer. Never raises.
    """
    if raw is None or isinstance(raw, bool):
        return None
    try:
        n = int(str(raw).strip())
    except (TypeError, ValueError):
        return None
    if n <= 0:
        return None
    return min(n, MAX_LIMIT)


def _store_failure(db: Session, exc: SQLAlchemyError, action: str):
    db.rollback()
    logger.exception("[DB] %s failed", action)
    return StoreError(f"Could not {action}")


def _touch(obj):
    # updated_at must strictly increase, even for mutations within one clock tick
    now = models.utcnow()
    if obj.updated_at is not None and now <= obj.updated_at:
        now = obj.updated_at + timedelta(microseconds=1)
    obj.updated_at = now


def _check_price(price: float):
    if price is None or not math.isfinite(price) or price < 0:
        raise ValidationError("Price must be a finite number greater than or equal to zero")


def _check_discount(price: float, discount_price: Optional[float]):
    _check_price(price)
    if discount_price is None:
        return
    if not math.isfinite(discount_price):
        raise ValidationError("Discount price must be a finite number")
    if discount_price <= 0:
        raise ValidationError("Discount price must be greater than zero")
    if discount_price >= price:
        raise ValidationError("Discount price must be lower than the base price")


# -------------------- QUERIES --------------------
def list_products(db: Session, filters: Optional[ProductFilter] = None) -> List[models.Product]:
    filters = filters or ProductFilter()
    q = db.query(models.Product)
    if not filters.include_inactive:
        q = q.filter(models.Product.is_active.is_(True))
    if filters.category and filters.category.strip():
        q = q.filter(func.lower(models.Product.category) == filters.category.strip().lower())
    if filters.discounted:
        q = q.filter(models.Product.discount_price.isnot(None))
    if filters.featured:
        q = q.filter(models.Product.featured.is_(True))
    q = q.order_by(
        models.Product.featured.desc(),
        models.Product.updated_at.desc(),
        models.Product.id.desc(),
    )
    limit = parse_limit(filters.limit)
    if limit is not None:
        q = q.limit(limit)
    try:
        return q.all()
    except SQLAlchemyError as e:
        raise _store_failure(db, e, "list products") from e


def get_product(db: Session, product_id: int) -> Optional[models.Product]:
    try:
        return db.query(models.Product).filter(models.Product.id == product_id).first()
    except SQLAlchemyError as e:
        raise _store_failure(db, e, "load product") from e


def get_product_or_404(db: Session, product_id: int) -> models.Product:
    obj = get_product(db, product_id)
    if obj is None:
        raise NotFoundError("Product not found")
    return obj


def count_products(db: Session) -> int:
    return db.query(func.count(models.Product.id)).scalar()


def get_admin_by_email(db: Session, email: str) -> Optional[models.AdminUser]:
    email_norm = email.strip().lower()
    return (
        db.query(models.AdminUser)
        .filter(func.lower(models.AdminUser.email) == email_norm)
        .first()
    )


def get_admin(db: Session, admin_id: int) -> Optional[models.AdminUser]:
    return db.query(models.AdminUser).filter(models.AdminUser.id == admin_id).first()


# -------------------- MUTATIONS --------------------
def _commit(db: Session, obj, action: str):
    try:
        db.commit()
    except SQLAlchemyError as e:
        raise _store_failure(db, e, action) from e
    db.refresh(obj)
    return obj


def _apply(obj: models.Product, p: schemas.ProductIn):
    obj.name = p.name
    obj.description = p.description
    obj.category = p.category.lower()
    obj.price = p.price
    obj.discount_price = p.discount_price
    obj.image_url = p.image_url
    obj.featured = bool(p.featured)
    obj.is_active = p.is_active is not False


def create_product(db: Session, p: schemas.ProductIn) -> models.Product:
    _check_discount(p.price, p.discount_price)
    obj = models.Product()
    _apply(obj, p)
    now = models.utcnow()
    obj.created_at = now
    obj.updated_at = now
    db.add(obj)
    obj = _commit(db, obj, "create product")
    logger.info("[Catalog] created product %s (%s)", obj.id, obj.name)
    return obj


def update_product(db: Session, product_id: int, p: schemas.ProductIn) -> models.Product:
    obj = get_product_or_404(db, product_id)
    _check_discount(p.price, p.discount_price)
    _apply(obj, p)
    _touch(obj)
    obj = _commit(db, obj, "update product")
    logger.info("[Catalog] updated product %s", obj.id)
    return obj


def set_discount(db: Session, product_id: int, discount_price: Optional[float]) -> models.Product:
    obj = get_product_or_404(db, product_id)
    _check_discount(obj.price, discount_price)
    obj.discount_price = discount_price
    _touch(obj)
    return _commit(db, obj, "update discount")


def toggle_active(db: Session, product_id: int) -> models.Product:
    obj = get_product_or_404(db, product_id)
    obj.is_active = not obj.is_active
    _touch(obj)
    return _commit(db, obj, "toggle product")


def delete_product(db: Session, product_id: int) -> int:
    obj = get_product_or_404(db, product_id)
    db.delete(obj)
    try:
        db.commit()
    except SQLAlchemyError as e:
        raise _store_failure(db, e, "delete product") from e
    logger.info("[Catalog] deleted product %s", product_id)
    return product_id
