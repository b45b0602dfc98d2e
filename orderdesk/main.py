from contextlib import asynccontextmanager
from datetime import timedelta
from typing import List, Optional

from fastapi import Depends, FastAPI, File, Form, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from . import crud, schemas
from .auth import SessionClaims, issue_token
from .config import Settings, load_settings, warn_if_insecure
from .db import ensure_store_reachable, init_db, make_session_factory, select_backend
from .deps import get_current_identity, get_db, get_receipt_store, get_settings, require_admin
from .errors import BadRequest, NotFound, add_exception_handlers
from .log import get_logger
from .uploads import PUBLIC_PREFIX, ReceiptStore

logger = get_logger(__name__)


def _first_error(exc: ValueError) -> str:
    errors = getattr(exc, "errors", None)
    if callable(errors):
        first = errors()[0]
        loc = ".".join(str(p) for p in first.get("loc", ()))
        return f"{loc}: {first['msg']}" if loc else first["msg"]
    return str(exc)


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    """Build the application.

    ``engine`` overrides the store selected from ``settings``; tests pass an
    in-memory SQLite engine here.
    """
    settings = settings or load_settings()
    warn_if_insecure(settings)

    if engine is None:
        backend = select_backend(settings)
        logger.info(f"Using store backend {backend.describe()}")
        engine = backend.create_engine()

    receipt_store = ReceiptStore(settings.upload_dir)
    receipt_store.ensure_directories()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Refuse to serve traffic without a working store
        ensure_store_reachable(engine)
        init_db(engine)
        yield
        engine.dispose()

    app = FastAPI(title="Order Desk", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    app.state.receipt_store = receipt_store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    add_exception_handlers(app)
    app.mount(PUBLIC_PREFIX, StaticFiles(directory=settings.upload_dir), name="uploads")

    register_routes(app)
    return app


def register_routes(app: FastAPI) -> None:
    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.post("/api/register", response_model=schemas.RegisterResponse, status_code=201)
    def register(payload: schemas.RegisterRequest, db: Session = Depends(get_db)):
        user = crud.create_user(db, payload)
        return {"message": "User registered successfully!", "userId": user.id}

    @app.post("/api/login", response_model=schemas.LoginResponse)
    def login(
        payload: schemas.LoginRequest,
        db: Session = Depends(get_db),
        settings: Settings = Depends(get_settings),
    ):
        user = crud.authenticate(db, payload.email, payload.password)
        claims = SessionClaims(
            user_id=user.id,
            name=user.name,
            role=user.role,
            phone=user.phone,
            user_class=user.user_class,
        )
        token = issue_token(claims, settings.jwt_secret, ttl=timedelta(hours=settings.token_ttl_hours))
        return {"message": "Login successful!", "token": token, "name": user.name, "role": user.role}

    @app.post("/api/orders", response_model=schemas.MessageResponse, status_code=201)
    def submit_order(
        identity: SessionClaims = Depends(get_current_identity),
        orderNumber: Optional[str] = Form(default=None),
        orderType: Optional[str] = Form(default=None),
        user_class: Optional[str] = Form(default=None, alias="class"),
        items: Optional[str] = Form(default=None),
        notes: Optional[str] = Form(default=None),
        total: Optional[str] = Form(default=None),
        paymentMethod: Optional[str] = Form(default=None),
        receipt: Optional[UploadFile] = File(default=None),
        db: Session = Depends(get_db),
        store: ReceiptStore = Depends(get_receipt_store),
    ):
        try:
            order = schemas.OrderCreate(
                order_number=orderNumber,
                order_type=orderType,
                user_class=user_class or None,
                order_details=items,
                notes=notes,
                payment_method=paymentMethod or None,
                total=total,
            )
        except ValueError as e:
            raise BadRequest(_first_error(e))

        receipt_path = None
        # browsers post an empty file part when nothing was picked
        if receipt is not None and receipt.filename:
            receipt_path = store.save(receipt.file, receipt.filename)

        try:
            crud.create_order(db, identity, order, receipt_path=receipt_path)
        except Exception:
            if receipt_path:
                store.discard(receipt_path)
            raise
        return {"message": "Order created successfully!"}

    @app.get("/api/admin/users", response_model=List[schemas.UserRead])
    def admin_list_users(_: SessionClaims = Depends(require_admin), db: Session = Depends(get_db)):
        return crud.list_users(db)

    @app.get("/api/admin/orders", response_model=List[schemas.OrderRead])
    def admin_list_orders(_: SessionClaims = Depends(require_admin), db: Session = Depends(get_db)):
        return crud.list_orders(db)

    @app.delete("/api/admin/orders/{order_id}", response_model=schemas.MessageResponse)
    def admin_delete_order(order_id: int, admin: SessionClaims = Depends(require_admin), db: Session = Depends(get_db)):
        if not crud.delete_order(db, order_id):
            raise NotFound("Order not found.")
        logger.info("Order deleted", extra={"order_id": order_id, "user_id": admin.user_id})
        return {"message": "Order deleted successfully."}
