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

"""Bearer token verification against the external identity provider."""

import logging
from typing import Optional

import httpx

from ..exceptions import AuthenticationError
from ..exceptions import UpstreamError

logger = logging.getLogger(__name__)


class IdentityClient:
  """Resolves an access token to the user id it was issued for."""

  def __init__(
      self, http: httpx.AsyncClient, base_url: Optional[str], api_key: str
  ):
    self.http = http
    self.base_url = (base_url or "").rstrip("/")
    self.api_key = api_key

  async def get_user_id(self, access_token: str) -> str:
    """Returns the user id for a valid token.

    Raises:
      AuthenticationError: The token is missing, invalid or expired.
      UpstreamError: The identity provider is not configured or unreachable.
    """
    if not access_token:
      raise AuthenticationError("Access denied, token not found")
    if not self.base_url:
      raise UpstreamError(
          "Identity provider is not configured", upstream="identity"
      )

    try:
      response = await self.http.get(
          f"{self.base_url}/user",
          headers={
              "Authorization": f"Bearer {access_token}",
              "apikey": self.api_key,
          },
      )
    except httpx.RequestError as e:
      logger.error("Network error verifying access token: %s", e)
      raise UpstreamError(
          "Identity provider is unreachable", upstream="identity", detail=str(e)
      ) from e

    if response.status_code in (401, 403):
      raise AuthenticationError("Invalid token or session expired")
    if response.status_code != 200:
      logger.error(
          "Identity provider failed: Status %d", response.status_code
      )
      raise UpstreamError(
          "Identity provider rejected the request",
          upstream="identity",
          detail=f"HTTP {response.status_code}",
      )

    try:
      user_id = response.json().get("id")
    except (ValueError, AttributeError):
      user_id = None
    if not user_id:
      raise AuthenticationError("Invalid token or session expired")
    return str(user_id)
