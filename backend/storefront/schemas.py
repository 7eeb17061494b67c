# storefront/schemas.py
from datetime import datetime
from typing import Optional, List, Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from . import pricing


class CamelModel(BaseModel):
    """JSON uses camelCase keys (imageUrl, isActive, ...); snake_case is accepted too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, allow_inf_nan=False)


# ---- products ----

class ProductIn(CamelModel):
    """Body of POST /products and PUT /products/{id}."""

    name: str = Field(..., min_length=3, max_length=255)
    description: Optional[str] = ""
    category: str = Field(..., min_length=3, max_length=100)
    price: float = Field(..., ge=0)
    discount_price: Optional[float] = Field(None, gt=0)
    image_url: str = Field(..., min_length=1, max_length=1024)
    featured: bool = False
    is_active: Optional[bool] = True

    @field_validator("name", "category", "image_url", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("category")
    @classmethod
    def lower_category(cls, v: str) -> str:
        return v.lower()

    @field_validator("description", mode="before")
    @classmethod
    def empty_description(cls, v):
        if v is None:
            return ""
        return v.strip() if isinstance(v, str) else v


class DiscountIn(CamelModel):
    discount_price: Optional[float] = None


class ProductOut(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    price: float
    image_url: Optional[str] = None
    category: str
    featured: bool
    is_active: bool
    discount_price: Optional[float] = None
    discount_percent: Optional[int] = None
    final_price: float
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row) -> "ProductOut":
        # finalPrice/discountPercent always come from the current price pair
        resolved = pricing.resolve(row.price, row.discount_price)
        return cls(
            id=row.id,
            name=row.name,
            description=row.description,
            price=row.price,
            image_url=row.image_url,
            category=row.category,
            featured=bool(row.featured),
            is_active=bool(row.is_active),
            discount_price=row.discount_price,
            discount_percent=resolved.discount_percent,
            final_price=resolved.final_price,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class ProductList(BaseModel):
    products: List[ProductOut]


# ---- admin auth ----

class LoginInput(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class AdminOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str


class TokenResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    user: AdminOut


# ---- uploads ----

class UploadOut(BaseModel):
    path: str
    url: str


# ---- checkout ----

class Payer(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[EmailStr] = None
    name: Optional[str] = Field(None, alias="nome")
    phone: Optional[str] = Field(None, alias="telefone")


class CartItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    size: Optional[str] = None
    color: Optional[str] = None
    qty: int = Field(1, ge=1)
    price: Optional[float] = None


class PixCheckoutIn(BaseModel):
    amount: Any = None
    payer: Optional[Payer] = None
    items: List[CartItem] = Field(default_factory=list)


class PixCheckoutOut(BaseModel):
    id: Optional[int] = None
    status: Optional[str] = None
    qr_code: Optional[str] = None
    qr_base64: Optional[str] = None
    copy_and_paste: Optional[str] = None
    amount: float
