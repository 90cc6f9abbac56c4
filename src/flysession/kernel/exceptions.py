# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Unified exception hierarchy for flysession.

All library exceptions inherit from FlySessionException, so callers can
catch one type for every session failure or a specific subclass for
targeted handling.

Categories:
- BusinessException: the requested session state does not exist
- InfrastructureException: misconfiguration and store backend failures

Signature verification failures are deliberately absent: an invalid or
unsigned cookie is reported as a value (``None``), not raised.
"""

from __future__ import annotations

# =============================================================================
# Base Exception
# =============================================================================


class FlySessionException(Exception):
    """Base exception for all flysession errors.

    Carries an optional error code and context dict for structured error data.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "SESSION_CONFIG").
        context: Arbitrary key-value pairs for error context and debugging.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.context: dict = context if context is not None else {}


# =============================================================================
# Business Exceptions
# =============================================================================


class BusinessException(FlySessionException):
    """Domain rule violations."""


class ResourceNotFoundException(BusinessException):
    """Requested resource does not exist."""


class SessionNotFoundException(ResourceNotFoundException):
    """No session is stored under the identifier, or it has expired.

    The request coordinator treats this as an anonymous request.
    """

    def __init__(self, session_id: str) -> None:
        super().__init__(
            f"Session '{session_id}' not found",
            code="SESSION_NOT_FOUND",
            context={"session_id": session_id},
        )
        self.session_id = session_id


# =============================================================================
# Infrastructure Exceptions
# =============================================================================


class InfrastructureException(FlySessionException):
    """Infrastructure failures: configuration, storage, network."""


class SessionConfigurationException(InfrastructureException):
    """The session layer is misconfigured for the current request.

    Fatal to the request and never retried.
    """

    def __init__(self, message: str, context: dict | None = None) -> None:
        super().__init__(message, code="SESSION_CONFIG", context=context)


class SessionStoreException(InfrastructureException):
    """A session store backend failed to read or write a record."""
