#   Copyright 2026 UCP Authors
#
#   Licensed under the Apache License, Version 2.0 (the "License");
#   you may not use this file except in compliance with the License.
#   You may obtain a copy of the License at
#
#       http://www.apache.org/licenses/LICENSE-2.0
#
#   Unless required by applicable law or agreed to in writing, software
#   distributed under the License is distributed on an "AS IS" BASIS,
#   WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#   See the License for the specific language governing permissions and
#   limitations under the License.

"""Database management and persistence layer for the storefront server.

This module provides the schema definitions, database session management, and
asynchronous data access helpers used by the server. It utilizes SQLAlchemy
with SQLite (via aiosqlite).

Key features include:
- `DatabaseManager`: Handles asynchronous engine initialization and session
  factory setup.
- WAL Mode: Automatically enables SQLite Write-Ahead Logging so the server
  and the maintenance tools can share the database file.
- Declarative Models: Defines tables for products, profiles, orders, order
  items and applied gateway notifications.
- Data Access Helpers: The only place order rows are read or written. Helpers
  never commit; the calling service owns the transaction boundary.
"""

import datetime
import logging
from typing import Any
from typing import Dict
from typing import List
from typing import Optional
import uuid

from sqlalchemy import Column
from sqlalchemy import event
from sqlalchemy import ForeignKey
from sqlalchemy import Integer
from sqlalchemy import JSON
from sqlalchemy import select
from sqlalchemy import String
from sqlalchemy import Text
from sqlalchemy import text
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import relationship
from sqlalchemy.orm import selectinload
from sqlalchemy.orm import sessionmaker

from .enums import OrderStatus

logger = logging.getLogger(__name__)

Base = declarative_base()


def _utcnow() -> str:
  return datetime.datetime.now(datetime.timezone.utc).isoformat()


def create_engine_for_path(path: str) -> AsyncEngine:
  """Creates an aiosqlite engine with foreign keys enforced."""
  engine = create_async_engine(f"sqlite+aiosqlite:///{path}", echo=False)

  @event.listens_for(engine.sync_engine, "connect")
  def _enable_foreign_keys(dbapi_connection, connection_record):
    del connection_record  # Unused.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()

  return engine


def create_session_factory(engine: AsyncEngine) -> sessionmaker:
  return sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


class DatabaseManager:
  """Manages the database engine and sessions without using global state."""

  def __init__(self) -> None:
    self.engine: Optional[AsyncEngine] = None
    self.session_factory: Optional[sessionmaker] = None

  async def init_db(self, path: str) -> None:
    """Initializes the database engine and creates tables."""
    self.engine = create_engine_for_path(path)

    # Enable WAL mode
    async with self.engine.connect() as conn:
      await conn.execute(text("PRAGMA journal_mode=WAL"))

    self.session_factory = create_session_factory(self.engine)

    async with self.engine.begin() as conn:
      await conn.run_sync(Base.metadata.create_all)

  async def close(self) -> None:
    """Closes the database engine."""
    if self.engine:
      await self.engine.dispose()
      self.engine = None
      self.session_factory = None


# Global manager instance (to be initialized via lifespan)
manager = DatabaseManager()


class Product(Base):
  __tablename__ = "products"

  id = Column(String, primary_key=True)
  name = Column(String)
  description = Column(Text, nullable=True)
  price = Column(Integer)  # Smallest currency unit
  stock = Column(Integer, default=0)
  image_url = Column(JSON, nullable=True)  # List of image URLs
  created_at = Column(String, default=_utcnow)


class Profile(Base):
  __tablename__ = "profiles"

  id = Column(String, primary_key=True)
  full_name = Column(String, nullable=True)
  role = Column(String, default="user")


class Order(Base):
  __tablename__ = "orders"

  id = Column(String, primary_key=True)
  user_id = Column(String, index=True)
  total_amount = Column(Integer)
  shipping_cost = Column(Integer)
  destination_id = Column(String)
  courier = Column(String)
  shipping_address = Column(Text)
  status = Column(String, default=OrderStatus.PENDING.value)
  snap_token = Column(String, nullable=True)
  tracking_number = Column(String, nullable=True)
  created_at = Column(String, default=_utcnow)

  items = relationship(
      "OrderItem", back_populates="order", order_by="OrderItem.id"
  )
  profile = relationship(
      "Profile",
      primaryjoin="foreign(Order.user_id) == Profile.id",
      viewonly=True,
  )


class OrderItem(Base):
  __tablename__ = "order_items"

  id = Column(Integer, primary_key=True, autoincrement=True)
  order_id = Column(String, ForeignKey("orders.id"), index=True)
  product_id = Column(String, ForeignKey("products.id"))
  quantity = Column(Integer)
  price_at_purchase = Column(Integer)

  order = relationship("Order", back_populates="items")
  product = relationship("Product")


class WebhookDelivery(Base):
  __tablename__ = "webhook_deliveries"

  key = Column(String, primary_key=True)
  order_id = Column(String, index=True)
  transaction_status = Column(String)
  resulting_status = Column(String)
  created_at = Column(String)


# --- Data Access Helpers ---


async def get_product(
    session: AsyncSession, product_id: str
) -> Optional[Product]:
  """Retrieves a product by ID."""
  return await session.get(Product, product_id)


async def get_products(
    session: AsyncSession, product_ids: List[str]
) -> Dict[str, Product]:
  """Retrieves multiple products by ID in a single query.

  Args:
    session: The database session to use.
    product_ids: Product IDs to look up; duplicates are fine.

  Returns:
    A mapping of product ID to Product for the IDs that exist.
  """
  result = await session.execute(
      select(Product).where(Product.id.in_(set(product_ids)))
  )
  return {product.id: product for product in result.scalars().all()}


async def get_stock(session: AsyncSession, product_id: str) -> Optional[int]:
  """Retrieves the stock count for a product."""
  result = await session.execute(
      select(Product.stock).where(Product.id == product_id)
  )
  return result.scalar_one_or_none()


async def decrement_stock(
    session: AsyncSession, product_id: str, quantity: int
) -> bool:
  """Atomically decrements stock if sufficient stock exists."""
  stmt = (
      update(Product)
      .where(Product.id == product_id)
      .where(Product.stock >= quantity)
      .values(stock=Product.stock - quantity)
  )
  result = await session.execute(stmt)
  return result.rowcount > 0


async def get_profile(session: AsyncSession, user_id: str) -> Optional[Profile]:
  """Retrieves the profile for a user ID."""
  return await session.get(Profile, user_id)


async def create_order(
    session: AsyncSession,
    order_fields: Dict[str, Any],
    lines: List[Dict[str, Any]],
) -> Order:
  """Adds an order header and its line items to the session.

  Both rows are flushed together so that a failure on either leaves the
  caller free to roll the whole unit back.

  Args:
    session: The database session.
    order_fields: Column values for the order header (without `id`).
    lines: Dicts with `product_id`, `quantity` and `price_at_purchase`.

  Returns:
    The pending Order with its items attached.
  """
  order = Order(
      id=str(uuid.uuid4()),
      status=OrderStatus.PENDING.value,
      created_at=_utcnow(),
      **order_fields,
  )
  order.items = [
      OrderItem(
          product_id=line["product_id"],
          quantity=line["quantity"],
          price_at_purchase=line["price_at_purchase"],
      )
      for line in lines
  ]
  session.add(order)
  await session.flush()
  return order


async def get_order(session: AsyncSession, order_id: str) -> Optional[Order]:
  """Retrieves an order by ID."""
  return await session.get(Order, order_id)


async def attach_payment_token(
    session: AsyncSession, order_id: str, token: str
) -> None:
  """Stores the gateway payment token on an order."""
  await session.execute(
      update(Order).where(Order.id == order_id).values(snap_token=token)
  )


async def update_order_status(
    session: AsyncSession,
    order_id: str,
    status: OrderStatus,
    expected: OrderStatus,
    tracking_number: Optional[str] = None,
) -> bool:
  """Writes a new status (and optionally a tracking number) on an order.

  The write only applies while the order still has the status the caller
  read, so a concurrent writer that committed first is never overwritten.

  Args:
    session: The database session.
    order_id: The order to update.
    status: The new status.
    expected: The status the caller based its decision on.
    tracking_number: Optional tracking number to store as well.

  Returns:
    True if the order was updated, False if its status had changed.
  """
  values: Dict[str, Any] = {"status": status.value}
  if tracking_number is not None:
    values["tracking_number"] = tracking_number
  result = await session.execute(
      update(Order)
      .where(Order.id == order_id)
      .where(Order.status == expected.value)
      .values(**values)
      .execution_options(synchronize_session=False)
  )
  return result.rowcount > 0


async def list_orders_for_user(
    session: AsyncSession, user_id: str
) -> List[Order]:
  """Retrieves a user's orders, newest first, with items and products."""
  result = await session.execute(
      select(Order)
      .where(Order.user_id == user_id)
      .options(selectinload(Order.items).selectinload(OrderItem.product))
      .order_by(Order.created_at.desc())
  )
  return list(result.scalars().all())


async def list_all_orders(session: AsyncSession) -> List[Order]:
  """Retrieves every order, newest first, with the owner's profile."""
  result = await session.execute(
      select(Order)
      .options(selectinload(Order.profile))
      .order_by(Order.created_at.desc())
  )
  return list(result.scalars().all())


async def list_abandoned_orders(
    session: AsyncSession, created_before: str
) -> List[Order]:
  """Retrieves pending orders without a payment token created before a time."""
  result = await session.execute(
      select(Order)
      .where(Order.status == OrderStatus.PENDING.value)
      .where(Order.snap_token.is_(None))
      .where(Order.created_at < created_before)
  )
  return list(result.scalars().all())


async def get_webhook_delivery(
    session: AsyncSession, key: str
) -> Optional[WebhookDelivery]:
  """Retrieves an applied gateway notification by its delivery key."""
  return await session.get(WebhookDelivery, key)


async def save_webhook_delivery(
    session: AsyncSession,
    key: str,
    order_id: str,
    transaction_status: str,
    resulting_status: OrderStatus,
) -> None:
  """Records a gateway notification as applied."""
  session.add(
      WebhookDelivery(
          key=key,
          order_id=order_id,
          transaction_status=transaction_status,
          resulting_status=resulting_status.value,
          created_at=_utcnow(),
      )
  )
