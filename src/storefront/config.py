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

"""Shared configuration and startup logic for the storefront server.

Settings come from absl flags whose defaults are read from the environment
(a `.env` file is loaded first), so deployments can configure the server
either way. The flags are read exactly once, in `main`, into an immutable
`Settings` object that is handed to `create_app`; nothing else reads FLAGS.
"""

import contextlib
import logging
import os
from typing import Optional

from absl import flags
from dotenv import load_dotenv
from fastapi import FastAPI
import httpx
from pydantic import BaseModel
from pydantic import ConfigDict

from . import db
from .services.identity_service import IdentityClient
from .services.payment_service import PaymentGateway
from .services.shipping_service import ShippingRateClient

logger = logging.getLogger(__name__)

FLAGS = flags.FLAGS

load_dotenv()

SANDBOX_SNAP_URL = "https://app.sandbox.midtrans.com"
PRODUCTION_SNAP_URL = "https://app.midtrans.com"


def _env_bool(name: str, default: bool) -> bool:
  value = os.getenv(name)
  if value is None:
    return default
  return value.strip().lower() in ("1", "true", "yes")


def _default_auth_url() -> Optional[str]:
  supabase_url = (os.getenv("SUPABASE_URL") or "").strip().rstrip("/")
  if not supabase_url:
    return None
  return f"{supabase_url}/auth/v1"


# Define flags only if they haven't been defined yet (to avoid duplicates
# during tests or re-imports)
try:
  flags.DEFINE_string(
      "db_path", os.getenv("STOREFRONT_DB_PATH"), "Path to the SQLite DB"
  )
  flags.DEFINE_integer(
      "port", int(os.getenv("PORT", "5000")), "Port to run the server on"
  )
  flags.DEFINE_string(
      "midtrans_server_key",
      os.getenv("MIDTRANS_SERVER_KEY", ""),
      "Midtrans server key used for Snap and webhook signatures",
  )
  flags.DEFINE_bool(
      "midtrans_is_production",
      _env_bool("MIDTRANS_IS_PRODUCTION", False),
      "Use the production Snap endpoint instead of the sandbox",
  )
  flags.DEFINE_string(
      "shipping_api_base_url",
      os.getenv("BASE_URL", ""),
      "Base URL of the shipping rate provider",
  )
  flags.DEFINE_string(
      "shipping_api_key", os.getenv("API_KEY", ""), "Shipping rate API key"
  )
  flags.DEFINE_string(
      "shipping_origin_id",
      os.getenv("SHIPPING_ORIGIN_ID", "5296"),
      "Provider destination id of the warehouse that ships orders",
  )
  flags.DEFINE_string(
      "geo_api_base_url",
      os.getenv("GEO_API_BASE_URL", "https://rajaongkir.komerce.id/api/v1"),
      "Base URL of the province/city/district lookup API",
  )
  flags.DEFINE_string(
      "delivery_api_key",
      os.getenv("DELIVERY_API_KEY", ""),
      "API key for the geography lookup API",
  )
  flags.DEFINE_string(
      "auth_base_url",
      _default_auth_url(),
      "Base URL of the identity provider (e.g. <supabase>/auth/v1)",
  )
  flags.DEFINE_string(
      "auth_api_key",
      os.getenv("SUPABASE_KEY", ""),
      "API key sent to the identity provider",
  )
  flags.DEFINE_float(
      "outbound_timeout_seconds",
      float(os.getenv("OUTBOUND_TIMEOUT_SECONDS", "10")),
      "Timeout applied to every outbound HTTP call",
  )
  flags.DEFINE_bool(
      "verify_webhook_signature",
      _env_bool("VERIFY_WEBHOOK_SIGNATURE", True),
      "Reject gateway notifications whose signature_key does not match",
  )
except flags.DuplicateFlagError:
  pass


class Settings(BaseModel):
  """Immutable server configuration."""

  model_config = ConfigDict(frozen=True)

  db_path: Optional[str] = None
  port: int = 5000
  midtrans_server_key: str = ""
  midtrans_is_production: bool = False
  shipping_api_base_url: str = ""
  shipping_api_key: str = ""
  shipping_origin_id: str = "5296"
  geo_api_base_url: str = "https://rajaongkir.komerce.id/api/v1"
  delivery_api_key: str = ""
  auth_base_url: Optional[str] = None
  auth_api_key: str = ""
  outbound_timeout_seconds: float = 10.0
  verify_webhook_signature: bool = True

  @property
  def snap_base_url(self) -> str:
    if self.midtrans_is_production:
      return PRODUCTION_SNAP_URL
    return SANDBOX_SNAP_URL


def settings_from_flags() -> Settings:
  """Builds Settings from parsed absl flags."""
  return Settings(
      db_path=FLAGS.db_path,
      port=FLAGS.port,
      midtrans_server_key=FLAGS.midtrans_server_key,
      midtrans_is_production=FLAGS.midtrans_is_production,
      shipping_api_base_url=FLAGS.shipping_api_base_url,
      shipping_api_key=FLAGS.shipping_api_key,
      shipping_origin_id=FLAGS.shipping_origin_id,
      geo_api_base_url=FLAGS.geo_api_base_url,
      delivery_api_key=FLAGS.delivery_api_key,
      auth_base_url=FLAGS.auth_base_url,
      auth_api_key=FLAGS.auth_api_key,
      outbound_timeout_seconds=FLAGS.outbound_timeout_seconds,
      verify_webhook_signature=FLAGS.verify_webhook_signature,
  )


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
  """Initializes the database and the outbound clients for one process.

  The HTTP clients are created once here and reached through
  `dependencies`, never through module globals.
  """
  settings: Settings = app.state.settings
  if settings.db_path:
    await db.manager.init_db(settings.db_path)

  timeout = httpx.Timeout(settings.outbound_timeout_seconds)
  shipping_http = httpx.AsyncClient(timeout=timeout)
  gateway_http = httpx.AsyncClient(timeout=timeout)
  identity_http = httpx.AsyncClient(timeout=timeout)

  app.state.shipping_client = ShippingRateClient(
      shipping_http,
      rate_base_url=settings.shipping_api_base_url,
      rate_api_key=settings.shipping_api_key,
      origin_id=settings.shipping_origin_id,
      geo_base_url=settings.geo_api_base_url,
      geo_api_key=settings.delivery_api_key,
  )
  app.state.payment_gateway = PaymentGateway(
      gateway_http,
      base_url=settings.snap_base_url,
      server_key=settings.midtrans_server_key,
  )
  app.state.identity_client = IdentityClient(
      identity_http,
      base_url=settings.auth_base_url,
      api_key=settings.auth_api_key,
  )
  if not settings.midtrans_server_key:
    logger.warning("MIDTRANS server key is not configured")

  try:
    yield
  finally:
    await shipping_http.aclose()
    await gateway_http.aclose()
    await identity_http.aclose()
    await db.manager.close()
