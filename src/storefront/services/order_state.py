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

"""Order status transitions.

Every writer of `orders.status` (the gateway webhook, the manual status API
and the abandoned-checkout sweep) asks `transition` for the new status
instead of writing the requested one directly.

Allowed moves:

  system  pending -> paid | cancelled | pending, and X -> X replays
  owner   any status except cancelled -> completed
  admin   anything (logged when outside the table above)
"""

import logging
from typing import Optional

from ..enums import Actor
from ..enums import OrderStatus
from ..exceptions import AuthorizationError
from ..exceptions import InvalidTransitionError
from ..exceptions import ValidationError

logger = logging.getLogger(__name__)

_SYSTEM_TRANSITIONS = {
    OrderStatus.PENDING: frozenset({
        OrderStatus.PENDING,
        OrderStatus.PAID,
        OrderStatus.CANCELLED,
    }),
}


def parse_status(value: Optional[str]) -> OrderStatus:
  """Converts a client supplied status string to an OrderStatus."""
  try:
    return OrderStatus((value or "").strip().lower())
  except ValueError:
    raise ValidationError(f"Unknown order status '{value}'") from None


def is_allowed(
    current: OrderStatus, requested: OrderStatus, actor: Actor
) -> bool:
  """Whether the table permits the move, without the admin override."""
  if actor == Actor.OWNER:
    return (
        requested == OrderStatus.COMPLETED
        and current != OrderStatus.CANCELLED
    )
  if current == requested:
    return True
  return requested in _SYSTEM_TRANSITIONS.get(current, frozenset())


def transition(
    current: OrderStatus, requested: OrderStatus, actor: Actor
) -> OrderStatus:
  """Returns the status an order moves to, or raises if the move is refused.

  Args:
    current: The order's stored status.
    requested: The status the caller wants.
    actor: Who is asking.

  Returns:
    The new status (equal to `current` for no-op replays).

  Raises:
    AuthorizationError: An owner asked for anything but `completed`.
    InvalidTransitionError: The move is not in the table for this actor.
  """
  if actor == Actor.ADMIN:
    if not is_allowed(current, requested, Actor.SYSTEM) and not is_allowed(
        current, requested, Actor.OWNER
    ):
      logger.warning(
          "Admin override: order status %s -> %s",
          current.value,
          requested.value,
      )
    return requested

  if actor == Actor.OWNER and requested != OrderStatus.COMPLETED:
    raise AuthorizationError("Customers may only mark an order as completed")

  if not is_allowed(current, requested, actor):
    raise InvalidTransitionError(
        f"Cannot move order from '{current.value}' to '{requested.value}'"
    )
  return requested
