from sqlalchemy.orm import declarative_base
from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    ForeignKey,
    Index,
    text,
)
from sqlalchemy.ext.asyncio import AsyncConnection


Base = declarative_base()

COUNTER_ORDERS = "orders"


# ----------------------------
# ORM models (DDL only; queries use text())
# ----------------------------
class OrderCounter(Base):
    __tablename__ = "order_counter"
    name = Column(String(32), primary_key=True)
    value = Column(Integer, nullable=False, default=0)


class Order(Base):
    __tablename__ = "orders"
    order_id = Column(String(16), primary_key=True)
    # counter value; orders newest-first sort on this, not the padded id
    seq = Column(Integer, nullable=False, unique=True)
    total_cents = Column(Integer, nullable=False)
    payment_type = Column(String(50), nullable=False)
    # pending | paid
    status = Column(String(16), nullable=False)
    created_at = Column(Float, nullable=False)


class OrderItem(Base):
    __tablename__ = "order_items"
    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(
        String(16), ForeignKey("orders.order_id"), nullable=False,
        index=True,
    )
    name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False)
    line_total_cents = Column(Integer, nullable=False)


class CatalogItem(Base):
    __tablename__ = "catalog_items"
    id = Column(Integer, primary_key=True, autoincrement=True)
    tab = Column(String(50), nullable=False)
    category = Column(String(100), nullable=False)
    name = Column(String(200), nullable=False)
    data_name = Column(String(200), nullable=False)
    price_cents = Column(Integer, nullable=False, default=0)
    color = Column(String(50), nullable=False, default="gray-600")
    order_index = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("idx_catalog_sort", "tab", "category", "order_index"),
    )


class AdminCredential(Base):
    __tablename__ = "admin_credential"
    # single admin identity
    id = Column(Integer, primary_key=True)
    salt = Column(String(256), nullable=False)
    hash = Column(String(256), nullable=False)


async def create_schema(conn: AsyncConnection) -> None:
    """Create tables if missing and make sure the counter row exists."""
    await conn.run_sync(Base.metadata.create_all)
    await conn.execute(text("""
        INSERT INTO order_counter (name, value) VALUES (:n, 0)
        ON CONFLICT (name) DO NOTHING
    """), {"n": COUNTER_ORDERS})
