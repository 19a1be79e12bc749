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

"""Enumerations for the storefront server.

This module defines the closed sets of values used to describe order
lifecycle state, the actors allowed to change it and the roles resolved
for authenticated callers.
"""

import enum


class OrderStatus(str, enum.Enum):
  PENDING = "pending"
  PAID = "paid"
  SHIPPED = "shipped"
  CANCELLED = "cancelled"
  COMPLETED = "completed"


class Actor(str, enum.Enum):
  """Who is asking for an order status change."""

  SYSTEM = "system"
  OWNER = "owner"
  ADMIN = "admin"


class Role(str, enum.Enum):
  USER = "user"
  ADMIN = "admin"
