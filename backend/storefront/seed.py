# storefront/seed.py
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import auth, crud, models
from .config import Settings
from .errors import StoreError

logger = logging.getLogger(__name__)

STARTER_CATALOG = [
    {
        "name": "Camiseta Oversized",
        "description": "Modelagem ampla em algodão premium.",
        "price": 99.9,
        "image_url": "images/fem-blusa.jpg",
        "category": "feminino",
        "featured": True,
    },
    {
        "name": "Vestido T-Shirt Oversized",
        "description": "Perfeito para o dia-a-dia com toque macio.",
        "price": 149.9,
        "image_url": "images/fem-vestido.jpg",
        "category": "feminino",
        "featured": True,
    },
    {
        "name": "Sneaker Chunky Feminino",
        "description": "Solado robusto e conforto máximo.",
        "price": 259.9,
        "image_url": "images/fem-sneaker.jpg",
        "category": "feminino",
    },
    {
        "name": "Hoodie Oversized",
        "description": "Moleton felpado com capuz estruturado.",
        "price": 169.9,
        "image_url": "images/mas-moleton.jpg",
        "category": "masculino",
        "featured": True,
    },
    {
        "name": "Cargo Relaxed Fit",
        "description": "Calça cargo com múltiplos bolsos utilitários.",
        "price": 199.9,
        "image_url": "images/mas-jeans.jpg",
        "category": "masculino",
    },
    {
        "name": "Sneaker Chunky Masculino",
        "description": "Design imponente com amortecimento.",
        "price": 289.9,
        "image_url": "images/mas-sneaker.jpg",
        "category": "masculino",
    },
    {
        "name": "Boné Trucker Street",
        "description": "Ajuste snapback e tela traseira.",
        "price": 79.9,
        "image_url": "images/acc-bone.jpg",
        "category": "acessorios",
        "featured": True,
    },
    {
        "name": "Óculos Street Retangular",
        "description": "Lentes com proteção UV400.",
        "price": 119.9,
        "image_url": "images/acc-oculos.jpg",
        "category": "acessorios",
    },
    {
        "name": "Carteira Minimal Preto",
        "description": "Couro ecológico com acabamento texturizado.",
        "price": 59.9,
        "image_url": "images/acc-carteira.jpg",
        "category": "acessorios",
    },
    {
        "name": "Hoodie Oversized Promo",
        "description": "Mesma qualidade com valor promocional.",
        "price": 169.9,
        "discount_price": 119.9,
        "image_url": "images/promo-hoodie.jpg",
        "category": "masculino",
        "featured": True,
    },
    {
        "name": "Camiseta Gráfica Oversized Promo",
        "description": "Estampa exclusiva limitada.",
        "price": 149.9,
        "discount_price": 119.9,
        "image_url": "images/promo-graphictee.jpg",
        "category": "unissex",
        "featured": True,
    },
    {
        "name": "Jaqueta Corta Vento Tech Promo",
        "description": "Tecido impermeável e respirável.",
        "price": 299.9,
        "discount_price": 239.9,
        "image_url": "images/promo-cortavento.jpg",
        "category": "masculino",
        "featured": True,
    },
]


def ensure_default_admin(db: Session, settings: Settings) -> models.AdminUser:
    email = settings.admin_email.strip().lower()
    existing = crud.get_admin_by_email(db, email)
    if existing:
        return existing
    admin = models.AdminUser(
        email=email,
        name=settings.admin_name,
        password_hash=auth.hash_password(settings.admin_password),
    )
    db.add(admin)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreError("Could not create the default admin") from e
    db.refresh(admin)
    logger.warning("[DB] default admin created (%s). Change its password.", email)
    return admin


def seed_products(db: Session) -> int:
    """
    Insert the starter catalog when the products table is empty.
    All rows go in one commit so a failure leaves the table empty.
    Returns the number of rows inserted.
    """
    total = crud.count_products(db)
    if total > 0:
        logger.info("[DB] catalog already has %s products, skipping seed", total)
        return 0

    now = models.utcnow()
    rows = [
        models.Product(
            name=item["name"],
            description=item["description"],
            price=item["price"],
            discount_price=item.get("discount_price"),
            image_url=item["image_url"],
            category=item["category"],
            featured=bool(item.get("featured")),
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        for item in STARTER_CATALOG
    ]
    db.add_all(rows)
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreError("Could not seed the starter catalog") from e
    logger.info("[DB] starter catalog inserted (%s products)", len(rows))
    return len(rows)


def init_database(db: Session, settings: Settings):
    ensure_default_admin(db, settings)
    if settings.seed_products:
        seed_products(db)
