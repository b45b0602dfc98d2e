from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models, schemas
from .auth import SessionClaims, dummy_verify, hash_password, verify_password
from .errors import BadRequest, Conflict, NotFound, Unauthorized
from .log import get_logger
from .uploads import receipt_marker

logger = get_logger(__name__)

INVALID_CREDENTIALS = "Invalid credentials."

# Business rule: amount stored rounded to 2 decimals, non-negative

def round_amount(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def create_user(db: Session, data: schemas.RegisterRequest) -> models.User:
    fields = (data.name, data.email, data.user_class, data.phone, data.password)
    if not all(f and f.strip() for f in fields):
        raise BadRequest("All fields are required.")

    email = normalize_email(data.email)
    db_user = models.User(
        name=data.name.strip(),
        email=email,
        password_hash=hash_password(data.password),
        user_class=data.user_class.strip(),
        phone=data.phone.strip(),
        role="user",
    )
    db.add(db_user)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        # email is the only unique column a complete payload can collide on
        logger.info("Registration rejected: duplicate email", extra={"email": email})
        raise Conflict("Email already exists.") from e
    db.refresh(db_user)
    logger.info("User registered", extra={"user_id": db_user.id, "email": email})
    return db_user


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.email == normalize_email(email)).first()


def authenticate(db: Session, email: Optional[str], password: Optional[str]) -> models.User:
    """Return the user owning these credentials.

    Unknown email and wrong password fail identically.
    """
    if not email or not email.strip() or not password:
        raise BadRequest("Please provide email and password.")

    user = get_user_by_email(db, email)
    if user is None:
        dummy_verify()
        logger.info("Login failed", extra={"email": normalize_email(email)})
        raise Unauthorized(INVALID_CREDENTIALS)
    if not verify_password(password, user.password_hash):
        logger.info("Login failed", extra={"email": user.email})
        raise Unauthorized(INVALID_CREDENTIALS)
    logger.info("Login succeeded", extra={"user_id": user.id})
    return user


def set_role(db: Session, email: str, role: str) -> models.User:
    if role not in models.ROLES:
        raise BadRequest(f"role must be one of {', '.join(models.ROLES)}")
    user = get_user_by_email(db, email)
    if user is None:
        raise NotFound("User not found.")
    user.role = role
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def list_users(db: Session) -> List[models.User]:
    return db.query(models.User).order_by(models.User.created_at.desc(), models.User.id.desc()).all()


def create_order(
    db: Session,
    identity: SessionClaims,
    order: schemas.OrderCreate,
    receipt_path: Optional[str] = None,
) -> models.Order:
    # Who placed the order comes from the verified token, never from the body.
    # The token can outlive the account it was issued for.
    if db.get(models.User, identity.user_id) is None:
        raise Unauthorized("Unauthorized: account no longer exists.")

    notes = (order.notes or "").replace("\x00", "")
    if receipt_path:
        notes += receipt_marker(receipt_path)

    db_order = models.Order(
        user_id=identity.user_id,
        customer_name=identity.name,
        user_phone=identity.phone,
        user_class=order.user_class or identity.user_class,
        order_number=order.order_number,
        order_type=order.order_type,
        order_details=order.order_details,
        notes=notes,
        payment_method=order.payment_method,
        total_amount=round_amount(order.total) if order.total is not None else None,
    )
    db.add(db_order)
    db.commit()
    db.refresh(db_order)
    logger.info("Order created", extra={"order_id": db_order.id, "user_id": identity.user_id})
    return db_order


def list_orders(db: Session) -> List[models.Order]:
    return db.query(models.Order).order_by(models.Order.created_at.desc(), models.Order.id.desc()).all()


def delete_order(db: Session, order_id: int) -> bool:
    order = db.get(models.Order, order_id)
    if not order:
        return False
    db.delete(order)
    db.commit()
    return True
