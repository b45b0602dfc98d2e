from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import relationship

from .db import Base

ROLES = ("user", "admin")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    user_class = Column(String(50), nullable=False)
    phone = Column(String(30), nullable=False)
    # simple RBAC; admins are promoted out of band
    role = Column(Enum(*ROLES, name="user_role"), nullable=False, default="user", server_default="user", index=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now(), index=True)

    orders = relationship("Order", back_populates="user", passive_deletes=True)


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    # who submitted it; the order outlives the account
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    customer_name = Column(String(100), nullable=True)
    order_number = Column(String(100), nullable=False)
    order_type = Column(String(50), nullable=False)
    user_class = Column(String(50), nullable=True)
    user_phone = Column(String(30), nullable=True)
    order_details = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    payment_method = Column(String(50), nullable=True)
    total_amount = Column(Numeric(10, 2), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now(), index=True)

    user = relationship("User", back_populates="orders")
