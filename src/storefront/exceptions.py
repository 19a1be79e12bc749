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

"""Custom exceptions for the storefront server."""

from typing import Optional


class StorefrontError(Exception):
  """Base class for all storefront exceptions."""

  def __init__(
      self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500
  ):
    self.message = message
    self.code = code
    self.status_code = status_code
    super().__init__(self.message)


class ValidationError(StorefrontError):
  """Raised when the request is invalid (e.g. missing fields)."""

  def __init__(self, message: str):
    super().__init__(message, code="INVALID_REQUEST", status_code=400)


class AuthenticationError(StorefrontError):
  """Raised when the caller could not be identified."""

  def __init__(self, message: str):
    super().__init__(message, code="UNAUTHENTICATED", status_code=401)


class AuthorizationError(StorefrontError):
  """Raised on a role or ownership violation."""

  def __init__(self, message: str):
    super().__init__(message, code="FORBIDDEN", status_code=403)


class NotFoundError(StorefrontError):
  """Raised when a requested order or product is not found."""

  def __init__(self, message: str):
    super().__init__(message, code="RESOURCE_NOT_FOUND", status_code=404)


class InvalidTransitionError(StorefrontError):
  """Raised when an order cannot move from its current status."""

  def __init__(self, message: str):
    super().__init__(message, code="INVALID_TRANSITION", status_code=409)


class UpstreamError(StorefrontError):
  """Raised when the shipping provider or payment gateway fails."""

  def __init__(
      self, message: str, upstream: str, detail: Optional[str] = None
  ):
    self.upstream = upstream
    self.detail = detail
    super().__init__(message, code="UPSTREAM_ERROR", status_code=500)


class InternalError(StorefrontError):
  """Raised on store or other unexpected failures."""

  def __init__(self, message: str):
    super().__init__(message, code="INTERNAL_ERROR", status_code=500)
