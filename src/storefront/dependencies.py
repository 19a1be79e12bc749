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

"""FastAPI dependencies for the storefront server.

This module contains dependency injection logic for FastAPI endpoints,
including:
- Database session management.
- Access to the process-wide outbound clients created by the lifespan.
- Bearer token authentication and admin gating.
- Service instantiation (CheckoutService, OrderService, WebhookReconciler).
"""

from typing import AsyncGenerator, Optional

from fastapi import Depends
from fastapi import Header
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from . import db
from .config import Settings
from .enums import Role
from .exceptions import AuthenticationError
from .exceptions import AuthorizationError
from .models import Principal
from .services.checkout_service import CheckoutService
from .services.identity_service import IdentityClient
from .services.order_service import OrderService
from .services.payment_service import PaymentGateway
from .services.shipping_service import ShippingRateClient
from .services.webhook_service import WebhookReconciler


def get_settings(request: Request) -> Settings:
  return request.app.state.settings


async def get_db() -> AsyncGenerator[AsyncSession, None]:
  """Dependency provider for a DB session."""
  async with db.manager.session_factory() as session:
    yield session


def get_shipping_client(request: Request) -> ShippingRateClient:
  return request.app.state.shipping_client


def get_payment_gateway(request: Request) -> PaymentGateway:
  return request.app.state.payment_gateway


def get_identity_client(request: Request) -> IdentityClient:
  return request.app.state.identity_client


async def get_current_user(
    authorization: Optional[str] = Header(None),
    identity_client: IdentityClient = Depends(get_identity_client),
    session: AsyncSession = Depends(get_db),
) -> Principal:
  """Resolves the `Authorization: Bearer <token>` header to a Principal."""
  if not authorization or not authorization.startswith("Bearer "):
    raise AuthenticationError("Access denied, token not found")

  token = authorization.split(" ", 1)[1].strip()
  user_id = await identity_client.get_user_id(token)

  profile = await db.get_profile(session, user_id)
  role = Role.USER
  if profile is not None and profile.role == Role.ADMIN.value:
    role = Role.ADMIN
  return Principal(id=user_id, role=role)


async def require_admin(
    principal: Principal = Depends(get_current_user),
) -> Principal:
  if not principal.is_admin:
    raise AuthorizationError("Forbidden: administrators only")
  return principal


def get_checkout_service(
    session: AsyncSession = Depends(get_db),
    shipping_client: ShippingRateClient = Depends(get_shipping_client),
    payment_gateway: PaymentGateway = Depends(get_payment_gateway),
) -> CheckoutService:
  """Dependency provider for CheckoutService."""
  return CheckoutService(session, shipping_client, payment_gateway)


def get_order_service(
    session: AsyncSession = Depends(get_db),
) -> OrderService:
  """Dependency provider for OrderService."""
  return OrderService(session)


def get_webhook_reconciler(
    session: AsyncSession = Depends(get_db),
    payment_gateway: PaymentGateway = Depends(get_payment_gateway),
    settings: Settings = Depends(get_settings),
) -> WebhookReconciler:
  """Dependency provider for WebhookReconciler."""
  return WebhookReconciler(
      session,
      payment_gateway,
      verify_signature=settings.verify_webhook_signature,
  )
