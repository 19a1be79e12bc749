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

"""Payment gateway notification route.

Once a notification parses, the route answers 200 whatever the outcome, so
the gateway stops retrying. The one exception is signature checking: while
`--verify_webhook_signature` is on (the default), a notification whose
`signature_key` does not match is refused with 403 before anything is
applied. Turn the flag off to accept unsigned notifications.
"""

from typing import Any, Dict

from fastapi import APIRouter
from fastapi import Body
from fastapi import Depends

from .. import dependencies
from ..models import WebhookNotification
from ..services.webhook_service import WebhookReconciler

router = APIRouter(prefix="/products")


@router.post(
    "/midtrans-webhook",
    response_model=Dict[str, Any],
    operation_id="payment_notification_webhook",
)
async def payment_notification_webhook(
    notification: WebhookNotification = Body(...),
    reconciler: WebhookReconciler = Depends(
        dependencies.get_webhook_reconciler
    ),
) -> Dict[str, Any]:
  """Payment Notification Webhook Implementation."""
  result = await reconciler.reconcile(notification)
  return {"message": "Webhook processed", "result": result.outcome}
