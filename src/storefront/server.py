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

"""Storefront Checkout Server (Python/FastAPI)."""

import logging
import sys
from typing import Optional, Sequence

from absl import app as absl_app
from fastapi import FastAPI
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import uvicorn

from . import __version__
from . import config
from .exceptions import StorefrontError
from .exceptions import UpstreamError
from .routes.orders import router as orders_router
from .routes.shipping import router as shipping_router
from .routes.webhooks import router as webhooks_router

# --- App Setup ---

logger = logging.getLogger(__name__)


async def storefront_exception_handler(
    request: Request, exc: StorefrontError
):
  """Converts storefront exceptions to JSON responses."""
  if isinstance(exc, UpstreamError):
    logger.error(
        "Upstream %s failed on %s %s: %s (%s)",
        exc.upstream,
        request.method,
        request.url.path,
        exc.message,
        exc.detail,
    )
  return JSONResponse(
      status_code=exc.status_code,
      content={"message": exc.message, "code": exc.code},
  )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
):
  """Reports malformed request bodies as 400 instead of 422."""
  del request  # Unused.
  errors = exc.errors()
  message = "Invalid request"
  if errors:
    location = ".".join(str(part) for part in errors[0].get("loc", ()))
    message = f"Invalid request: {location} {errors[0].get('msg', '')}".strip()
  return JSONResponse(
      status_code=400,
      content={"message": message, "code": "INVALID_REQUEST"},
  )


def create_app(settings: Optional[config.Settings] = None) -> FastAPI:
  """Builds the FastAPI application for the given settings."""
  app = FastAPI(
      title="Storefront Checkout Service",
      version=__version__,
      description="Checkout and payment reconciliation for the storefront",
      lifespan=config.lifespan,
  )
  app.state.settings = settings or config.Settings()

  app.add_exception_handler(StorefrontError, storefront_exception_handler)
  app.add_exception_handler(RequestValidationError, request_validation_handler)

  @app.get("/health", operation_id="health")
  async def health():
    return {"status": "ok", "version": __version__}

  app.include_router(orders_router)
  app.include_router(shipping_router)
  app.include_router(webhooks_router)
  return app


def main(argv: Sequence[str]) -> None:
  """Main entry point for the storefront server."""
  del argv  # Unused.
  logging.basicConfig(level=logging.INFO)

  settings = config.settings_from_flags()
  if settings.db_path is None:
    logger.error("--db_path (or STOREFRONT_DB_PATH) must be provided.")
    print("\nUsage:")
    print(config.FLAGS.main_module_help())
    sys.exit(1)

  uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


def run() -> None:
  absl_app.run(main)


if __name__ == "__main__":
  run()
