from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, JSON, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .database import Base


class Restaurant(Base):
    __tablename__ = "restaurants"

    legal_id = Column(String(9), primary_key=True)
    legal_name = Column(String, nullable=False)
    name = Column(String, nullable=False)
    years_active = Column(Integer, nullable=True)
    payment_provider = Column(String, nullable=False, default="trial")
    is_activated = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    contacts = relationship("Contact", back_populates="restaurant", cascade="all, delete-orphan")
    suppliers = relationship("Supplier", back_populates="restaurant", cascade="all, delete-orphan")


class Contact(Base):
    __tablename__ = "contacts"
    __table_args__ = (UniqueConstraint("restaurant_id", "whatsapp", name="uq_contact_whatsapp"),)

    id = Column(Integer, primary_key=True, index=True)
    restaurant_id = Column(String(9), ForeignKey("restaurants.legal_id"), nullable=False)
    whatsapp = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    role = Column(String, nullable=False, default="owner")
    email = Column(String, nullable=True)

    restaurant = relationship("Restaurant", back_populates="contacts")


class Supplier(Base):
    __tablename__ = "suppliers"
    __table_args__ = (UniqueConstraint("restaurant_id", "whatsapp", name="uq_supplier_whatsapp"),)

    id = Column(Integer, primary_key=True, index=True)
    restaurant_id = Column(String(9), ForeignKey("restaurants.legal_id"), nullable=False)
    name = Column(String, nullable=False)
    whatsapp = Column(String, nullable=False, index=True)
    categories = Column(JSON, nullable=False, default=list)
    reminders = Column(JSON, nullable=False, default=list)  # [{"day": "sun", "hour": 11, "minute": 0}]
    rating = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    restaurant = relationship("Restaurant", back_populates="suppliers")
    products = relationship("Product", back_populates="supplier", cascade="all, delete-orphan")


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=False)
    name = Column(String, nullable=False)
    unit = Column(String, nullable=False, default="other")
    emoji = Column(String, nullable=True)
    par_midweek = Column(Float, nullable=False)
    par_weekend = Column(Float, nullable=False)

    supplier = relationship("Supplier", back_populates="products")
