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

"""Tests for order status transitions."""

from absl.testing import absltest
from storefront.enums import Actor
from storefront.enums import OrderStatus
from storefront.exceptions import AuthorizationError
from storefront.exceptions import InvalidTransitionError
from storefront.exceptions import ValidationError
from storefront.services import order_state


class TransitionTest(absltest.TestCase):

  def test_system_moves_from_pending(self):
    for target in (
        OrderStatus.PENDING,
        OrderStatus.PAID,
        OrderStatus.CANCELLED,
    ):
      self.assertEqual(
          order_state.transition(OrderStatus.PENDING, target, Actor.SYSTEM),
          target,
      )

  def test_system_replay_is_noop(self):
    for status in OrderStatus:
      self.assertEqual(
          order_state.transition(status, status, Actor.SYSTEM), status
      )

  def test_system_cannot_leave_settled_states(self):
    for current, requested in (
        (OrderStatus.PAID, OrderStatus.CANCELLED),
        (OrderStatus.PAID, OrderStatus.PENDING),
        (OrderStatus.CANCELLED, OrderStatus.PAID),
        (OrderStatus.COMPLETED, OrderStatus.CANCELLED),
        (OrderStatus.PENDING, OrderStatus.SHIPPED),
    ):
      with self.subTest(current=current, requested=requested):
        with self.assertRaises(InvalidTransitionError):
          order_state.transition(current, requested, Actor.SYSTEM)

  def test_owner_may_only_complete(self):
    self.assertEqual(
        order_state.transition(
            OrderStatus.SHIPPED, OrderStatus.COMPLETED, Actor.OWNER
        ),
        OrderStatus.COMPLETED,
    )
    with self.assertRaises(AuthorizationError):
      order_state.transition(
          OrderStatus.PENDING, OrderStatus.CANCELLED, Actor.OWNER
      )
    with self.assertRaises(InvalidTransitionError):
      order_state.transition(
          OrderStatus.CANCELLED, OrderStatus.COMPLETED, Actor.OWNER
      )

  def test_admin_overrides_table(self):
    with self.assertLogs(order_state.logger, level="WARNING"):
      self.assertEqual(
          order_state.transition(
              OrderStatus.CANCELLED, OrderStatus.PAID, Actor.ADMIN
          ),
          OrderStatus.PAID,
      )

  def test_parse_status(self):
    self.assertEqual(order_state.parse_status(" Paid "), OrderStatus.PAID)
    with self.assertRaises(ValidationError):
      order_state.parse_status("refunded")
    with self.assertRaises(ValidationError):
      order_state.parse_status(None)


if __name__ == "__main__":
  absltest.main()
