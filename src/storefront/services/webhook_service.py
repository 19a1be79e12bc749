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

"""Reconciliation of payment gateway notifications.

The gateway retries any notification that is not answered with a 2xx, so
once a payload has been parsed (and its signature accepted) the reconciler
never raises: every failure after that point is logged and the notification
is acknowledged.

Notifications may arrive late, out of order or more than once. Each one is
applied through the order state machine, and applied notifications are
recorded by delivery key so a replay changes nothing.
"""

import dataclasses
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .. import db
from ..enums import Actor
from ..enums import OrderStatus
from ..exceptions import AuthorizationError
from ..exceptions import InvalidTransitionError
from ..models import WebhookNotification
from . import order_state
from .payment_service import PaymentGateway

logger = logging.getLogger(__name__)

_PAID_STATUSES = frozenset({"capture", "settlement"})
_CANCELLED_STATUSES = frozenset({"cancel", "deny", "expire"})


def map_status(
    transaction_status: str, fraud_status: Optional[str]
) -> Optional[OrderStatus]:
  """Maps a gateway transaction status to an order status.

  Returns:
    The target status, or None when the notification does not move the
    order (unknown status, or a capture flagged by fraud screening).
  """
  transaction_status = (transaction_status or "").lower()
  if transaction_status in _PAID_STATUSES:
    if not fraud_status or fraud_status.lower() == "accept":
      return OrderStatus.PAID
    return None
  if transaction_status in _CANCELLED_STATUSES:
    return OrderStatus.CANCELLED
  if transaction_status == "pending":
    return OrderStatus.PENDING
  return None


def delivery_key(notification: WebhookNotification) -> str:
  return ":".join([
      notification.order_id,
      notification.transaction_status,
      notification.status_code or "",
      notification.fraud_status or "",
  ])


@dataclasses.dataclass(frozen=True)
class ReconcileResult:
  order_id: str
  outcome: str
  status: Optional[OrderStatus] = None


class WebhookReconciler:
  """Applies gateway notifications to orders."""

  def __init__(
      self,
      session: AsyncSession,
      payment_gateway: PaymentGateway,
      verify_signature: bool = True,
  ):
    self.session = session
    self.payment_gateway = payment_gateway
    self.verify_signature = verify_signature

  async def reconcile(
      self, notification: WebhookNotification
  ) -> ReconcileResult:
    """Applies one notification.

    Raises:
      AuthorizationError: Signature verification is enabled and the
        notification's signature_key does not match.
    """
    order_id = notification.order_id
    logger.info(
        "Webhook received for order %s [%s]",
        order_id,
        notification.transaction_status,
    )

    if self.verify_signature and not self.payment_gateway.verify_signature(
        order_id,
        notification.status_code,
        notification.gross_amount,
        notification.signature_key,
    ):
      logger.warning("Rejected webhook for order %s: bad signature", order_id)
      raise AuthorizationError("Invalid signature")

    target = map_status(
        notification.transaction_status, notification.fraud_status
    )
    if target is None:
      logger.info(
          "Ignoring webhook for order %s: status=%s fraud=%s",
          order_id,
          notification.transaction_status,
          notification.fraud_status,
      )
      return ReconcileResult(order_id, "ignored")

    try:
      return await self._apply(notification, target)
    except IntegrityError:
      # A concurrent delivery with the same key committed first.
      await self.session.rollback()
      logger.info(
          "Duplicate webhook %s for order %s (concurrent delivery)",
          delivery_key(notification),
          order_id,
      )
      return ReconcileResult(order_id, "duplicate")
    except SQLAlchemyError:
      await self.session.rollback()
      logger.exception(
          "Failed to apply webhook for order %s (%s); acknowledged anyway",
          order_id,
          target.value,
      )
      return ReconcileResult(order_id, "store_error", target)

  async def _apply(
      self, notification: WebhookNotification, target: OrderStatus
  ) -> ReconcileResult:
    order_id = notification.order_id
    key = delivery_key(notification)
    if await db.get_webhook_delivery(self.session, key):
      logger.info("Duplicate webhook %s for order %s", key, order_id)
      return ReconcileResult(order_id, "duplicate")

    order = await db.get_order(self.session, order_id)
    if order is None:
      logger.warning("Webhook for unknown order %s", order_id)
      return ReconcileResult(order_id, "unknown_order")

    current = OrderStatus(order.status)
    try:
      new_status = order_state.transition(current, target, Actor.SYSTEM)
    except InvalidTransitionError as e:
      logger.warning("Webhook for order %s not applied: %s", order_id, e)
      return ReconcileResult(order_id, "rejected", current)

    if new_status != current and not await db.update_order_status(
        self.session, order_id, new_status, expected=current
    ):
      await self.session.rollback()
      logger.warning(
          "Webhook for order %s not applied: status changed from %s",
          order_id,
          current.value,
      )
      return ReconcileResult(order_id, "rejected", current)
    await db.save_webhook_delivery(
        self.session,
        key,
        order_id,
        notification.transaction_status,
        new_status,
    )
    await self.session.commit()

    if new_status != current:
      logger.info(
          "Order %s moved %s -> %s", order_id, current.value, new_status.value
      )
      return ReconcileResult(order_id, "updated", new_status)
    return ReconcileResult(order_id, "unchanged", new_status)
