import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import parse_qsl

from fastapi import (
    APIRouter,
    FastAPI,
    UploadFile,
    File,
    HTTPException,
    Depends,
    Query,
    Request,
)
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import auth, crud, models, notifications, payments, schemas, seed, utils
from .config import Settings, configure_logging
from .database import Base, make_engine, make_session_factory
from .deps import get_db, get_settings
from .errors import CatalogError, NotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

TRUTHY = ("1", "true", "yes", "on")


def flag(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() in TRUTHY


def get_payment_client(settings: Settings = Depends(get_settings)) -> payments.MercadoPagoClient:
    return payments.MercadoPagoClient(settings.mp_access_token, timeout=settings.mp_timeout)


@router.get("/health")
def health():
    return {"ok": True}


# -------------------- ADMIN AUTH --------------------
@router.post("/admin/login", response_model=schemas.TokenResponse)
def login(
    payload: schemas.LoginInput,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    admin = auth.authenticate(db, payload.email, payload.password)
    if not admin:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    token = auth.create_access_token(admin, settings)
    logger.info("[Auth] admin %s logged in", admin.email)
    return schemas.TokenResponse(token=token, user=schemas.AdminOut.model_validate(admin))


@router.get("/admin/me", response_model=schemas.AdminOut)
def me(admin: models.AdminUser = Depends(auth.get_current_admin)):
    return admin


# -------------------- PRODUCTS --------------------
@router.get("/products", response_model=schemas.ProductList)
def list_products(
    category: Optional[str] = None,
    featured: Optional[str] = None,
    discounted: Optional[str] = None,
    include_inactive: Optional[str] = Query(None, alias="includeInactive"),
    limit: Optional[str] = None,
    db: Session = Depends(get_db),
    admin: Optional[models.AdminUser] = Depends(auth.get_optional_admin),
):
    filters = crud.ProductFilter(
        category=category,
        featured=flag(featured),
        discounted=flag(discounted),
        # anonymous callers only ever see active products
        include_inactive=flag(include_inactive) and admin is not None,
        limit=limit,
    )
    rows = crud.list_products(db, filters)
    return {"products": [schemas.ProductOut.from_row(r) for r in rows]}


@router.get("/products/{product_id}", response_model=schemas.ProductOut)
def get_product(
    product_id: int,
    db: Session = Depends(get_db),
    admin: Optional[models.AdminUser] = Depends(auth.get_optional_admin),
):
    obj = crud.get_product_or_404(db, product_id)
    if not obj.is_active and admin is None:
        raise NotFoundError("Product not found")
    return schemas.ProductOut.from_row(obj)


@router.post("/products", response_model=schemas.ProductOut, status_code=201)
def create_product(
    payload: schemas.ProductIn,
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(auth.get_current_admin),
):
    return schemas.ProductOut.from_row(crud.create_product(db, payload))


@router.put("/products/{product_id}", response_model=schemas.ProductOut)
def update_product(
    product_id: int,
    payload: schemas.ProductIn,
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(auth.get_current_admin),
):
    return schemas.ProductOut.from_row(crud.update_product(db, product_id, payload))


@router.patch("/products/{product_id}/discount", response_model=schemas.ProductOut)
def set_discount(
    product_id: int,
    payload: schemas.DiscountIn,
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(auth.get_current_admin),
):
    return schemas.ProductOut.from_row(crud.set_discount(db, product_id, payload.discount_price))


@router.patch("/products/{product_id}/toggle", response_model=schemas.ProductOut)
def toggle_product(
    product_id: int,
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(auth.get_current_admin),
):
    return schemas.ProductOut.from_row(crud.toggle_active(db, product_id))


@router.delete("/products/{product_id}")
def delete_product(
    product_id: int,
    db: Session = Depends(get_db),
    admin: models.AdminUser = Depends(auth.get_current_admin),
):
    return {"deleted": crud.delete_product(db, product_id)}


# -------------------- UPLOADS --------------------
@router.post("/uploads/image", response_model=schemas.UploadOut)
def upload_image(
    image: UploadFile = File(...),
    settings: Settings = Depends(get_settings),
    admin: models.AdminUser = Depends(auth.get_current_admin),
):
    ext = utils.image_extension(image.content_type)
    filename = utils.save_upload_file(
        image.file,
        settings.upload_dir,
        ext,
        max_bytes=settings.max_image_mb * 1024 * 1024,
    )
    path = f"/uploads/{filename}"
    logger.info("[Upload] stored %s (%s)", filename, image.filename)
    return {"path": path, "url": path}


# -------------------- CHECKOUT --------------------
@router.post("/checkout/pix", response_model=schemas.PixCheckoutOut)
def checkout_pix(
    payload: schemas.PixCheckoutIn,
    client: payments.MercadoPagoClient = Depends(get_payment_client),
):
    logger.info(
        "[PIX] checkout request: payer=%s items=%s",
        payload.payer.email if payload.payer else None,
        len(payload.items),
    )
    return payments.create_pix_checkout(client, payload)


async def webhook_payload(request: Request) -> Dict[str, Any]:
    """
    Notification body as a dict. Mercado Pago sends JSON or form-encoded
    IPN bodies, sometimes with the ids in the query string. Anything that
    cannot be read becomes an empty dict.
    """
    payload: Dict[str, Any] = {}
    raw = await request.body()
    if raw:
        try:
            data = json.loads(raw)
        except ValueError:
            data = dict(parse_qsl(raw.decode("utf-8", "replace")))
        if isinstance(data, dict):
            payload = data
    for key, value in request.query_params.items():
        payload.setdefault(key, value)
    return payload


@router.post("/webhooks/mp")
def mercadopago_webhook(
    payload: Dict[str, Any] = Depends(webhook_payload),
    settings: Settings = Depends(get_settings),
):
    """
    Payment notifications from Mercado Pago. Always answers 200;
    failures are only logged.
    """
    event_type = payload.get("type") or payload.get("topic")
    logger.info("[Webhook] received type=%s action=%s", event_type, payload.get("action"))
    data = payload.get("data")
    payment_id = (data.get("id") if isinstance(data, dict) else None) or payload.get("data.id") or payload.get("id")
    if event_type != "payment" or not payment_id:
        return {"received": True}
    if not payments.is_payment_id(payment_id):
        logger.warning("[Webhook] ignoring malformed payment id %r", payment_id)
        return {"received": True}
    try:
        client = payments.MercadoPagoClient(settings.mp_access_token, timeout=settings.mp_timeout)
        payment = client.get_payment(payment_id)
    except (CatalogError, ValueError):
        logger.exception("[Webhook] could not load payment %s", payment_id)
        return {"received": True}

    logger.info("[Webhook] payment %s status=%s", payment_id, payment.get("status"))
    if settings.emails_enabled:
        sender = notifications.EmailSender(settings.resend_api_key, settings.email_from)
        notifications.notify_payment_approved(sender, payment, settings.email_admin)
    return {"received": True}


# -------------------- APP --------------------
def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def install_error_handlers(app: FastAPI):
    @app.exception_handler(CatalogError)
    async def catalog_error(request: Request, exc: CatalogError):
        if exc.status_code >= 500:
            logger.error("[API] %s %s failed: %s", request.method, request.url.path, exc.message)
        return _error_response(exc.status_code, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_error(request: Request, exc: RequestValidationError):
        reasons = []
        for err in exc.errors():
            loc = ".".join(str(p) for p in err.get("loc", ())[1:])
            reasons.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
        return _error_response(400, "; ".join(reasons) or "Invalid request")

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    engine = make_engine(settings.database_url)
    Base.metadata.create_all(bind=engine)
    SessionLocal = make_session_factory(engine)
    with SessionLocal() as db:
        seed.init_database(db, settings)

    app = FastAPI(title="Loja Street API")
    app.state.settings = settings
    app.state.engine = engine
    app.state.SessionLocal = SessionLocal

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        logger.info("%s %s -> %s", request.method, request.url.path, response.status_code)
        return response

    settings.upload_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=str(settings.upload_dir)), name="uploads")
    app.include_router(router)
    install_error_handlers(app)
    return app


_app: Optional[FastAPI] = None


def __getattr__(name):
    # `uvicorn storefront.main:app` builds the app from the environment on first access
    global _app
    if name == "app":
        if _app is None:
            _app = create_app()
        return _app
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


if __name__ == "__main__":
    import uvicorn

    settings = Settings.from_env()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)
