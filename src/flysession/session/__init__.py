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
"""flysession session — server-side sessions behind a signed cookie.

Import concrete store types from the adapter package::

    from flysession.session.adapters.memory import InMemorySessionStore
    from flysession.session.adapters.redis import RedisSessionStore
"""

from flysession.session.cookie import CookieAttributes
from flysession.session.manager import SessionManager
from flysession.session.middleware import SessionMiddleware, is_secure
from flysession.session.ports.outbound import SessionStore
from flysession.session.session import HttpSession, SessionPolicy
from flysession.session.signer import Signer

__all__ = [
    "CookieAttributes",
    "HttpSession",
    "SessionManager",
    "SessionMiddleware",
    "SessionPolicy",
    "SessionStore",
    "Signer",
    "is_secure",
]
