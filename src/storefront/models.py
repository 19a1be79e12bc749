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

"""Request and response models for the storefront REST server.

Request models are deliberately lenient (most fields optional) so that
missing checkout input is reported by the services as a single 400 error
instead of FastAPI's per-field validation output.
"""

from typing import Any, List, Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

from .enums import Role


class Principal(BaseModel):
  """The authenticated caller."""

  id: str
  role: Role = Role.USER

  @property
  def is_admin(self) -> bool:
    return self.role == Role.ADMIN


class CartItem(BaseModel):
  """One cart entry as submitted by the client.

  `price` is accepted for compatibility but never used for pricing.
  """

  model_config = ConfigDict(extra="ignore")

  id: str
  name: Optional[str] = None
  price: Optional[float] = None
  quantity: int
  weight: Optional[int] = None


class CreateOrderRequest(BaseModel):
  model_config = ConfigDict(extra="ignore")

  items: List[CartItem] = Field(default_factory=list)
  destination_id: Optional[str] = None
  courier: Optional[str] = None
  shipping_address: Optional[str] = None


class CreateOrderResponse(BaseModel):
  model_config = ConfigDict(populate_by_name=True)

  success: bool = True
  token: str
  order_id: str = Field(serialization_alias="orderId")


class ShippingCostRequest(BaseModel):
  model_config = ConfigDict(extra="ignore")

  items: List[CartItem] = Field(default_factory=list)
  destination_id: Optional[str] = None
  courier: Optional[str] = None


class ShippingQuote(BaseModel):
  """The authoritative shipping cost for one shipment."""

  cost: int
  service: str
  name: str = ""

  @property
  def courier_label(self) -> str:
    if self.name:
      return f"{self.name} - {self.service}"
    return self.service


class WebhookNotification(BaseModel):
  """A payment gateway transaction notification."""

  model_config = ConfigDict(extra="allow")

  order_id: str
  transaction_status: str
  fraud_status: Optional[str] = None
  status_code: Optional[str] = None
  gross_amount: Optional[str] = None
  signature_key: Optional[str] = None


class OrderStatusUpdateRequest(BaseModel):
  model_config = ConfigDict(extra="ignore")

  status: Optional[str] = None
  tracking_number: Optional[str] = None


class ProductSnapshot(BaseModel):
  name: Optional[str] = None
  image_url: Optional[List[str]] = None


class OrderItemView(BaseModel):
  id: int
  quantity: int
  price_at_purchase: int
  products: Optional[ProductSnapshot] = None


class OrderView(BaseModel):
  """An order as returned to its owner or to an administrator."""

  id: str
  user_id: Optional[str] = None
  created_at: Optional[str] = None
  status: str
  total_amount: int
  shipping_cost: int
  destination_id: Optional[str] = None
  courier: Optional[str] = None
  shipping_address: Optional[str] = None
  snap_token: Optional[str] = None
  tracking_number: Optional[str] = None
  order_items: Optional[List[OrderItemView]] = None
  profiles: Optional[dict[str, Any]] = None


class OrderStats(BaseModel):
  model_config = ConfigDict(populate_by_name=True)

  total_orders: int = Field(serialization_alias="totalOrders")
  total_revenue: int = Field(serialization_alias="totalRevenue")
  pending_orders: int = Field(serialization_alias="pendingOrders")


class StatsResponse(BaseModel):
  stats: OrderStats
  orders: List[OrderView]
