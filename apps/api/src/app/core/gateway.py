"""
Request Gateway

Composes the per-request pipeline into a single FastAPI dependency:

    rate governor -> sanitizer -> schema validator -> identity & role gate

Routes never declare their body or typed path parameters directly. FastAPI
would otherwise parse and validate those before any dependency runs, putting
validation ahead of rate limiting. Instead a route declares

    ctx: GatewayContext = Depends(gateway(...))

and receives the validated body/query models, the parsed path identifiers and
the authenticated principal. Each stage either passes its result on or raises
a GatewayError; nothing is written before every stage has passed.

Usage:
    @router.post("")
    async def create_application(
        ctx: GatewayContext = Depends(
            gateway(body="applications.create", roles={UserRole.STUDENT})
        ),
    ):
        ...
"""

import json
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import Principal, authenticate, authorize
from app.core.config import settings
from app.core.database import get_db
from app.core.errors import (
    InvalidJSONError,
    MalformedIdentifierError,
    PayloadTooLargeError,
    RateLimitExceeded,
)
from app.core.rate_limit import RouteClass, get_rate_governor
from app.core.sanitize import sanitize
from app.core.validation import validate
from app.modules.users.models import UserRole

logger = logging.getLogger(__name__)

# Security scheme for OpenAPI documentation; missing credentials are reported
# by the gate itself so the error goes through the classifier.
bearer_scheme = HTTPBearer(
    auto_error=False,
    description="JWT Bearer token for authentication",
)


@dataclass
class GatewayContext:
    """Everything a handler needs once the pipeline has passed."""

    db: AsyncSession
    rate_key: str
    route_class: RouteClass
    principal: Principal | None = None
    body: Any = None
    query: Any = None
    ids: dict[str, UUID] = field(default_factory=dict)

    def require_principal(self) -> Principal:
        if self.principal is None:
            raise RuntimeError("Route was declared without authentication")
        return self.principal


def client_identity(request: Request) -> str:
    """Key used for rate windows: the client address."""
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


async def read_json_body(request: Request, max_bytes: int | None = None) -> Any:
    """
    Read and parse the JSON body, enforcing the size limit.

    An empty body is treated as an empty object.

    Raises:
        PayloadTooLargeError: Declared or actual size above the limit
        InvalidJSONError: Body is not valid UTF-8 JSON
    """
    limit = max_bytes if max_bytes is not None else settings.max_body_bytes

    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        raise PayloadTooLargeError(limit)

    raw = await request.body()
    if len(raw) > limit:
        raise PayloadTooLargeError(limit)
    if not raw.strip():
        return {}

    try:
        return json.loads(raw)
    except ValueError as e:
        raise InvalidJSONError() from e


def parse_identifier(name: str, value: Any) -> UUID:
    """Parse a path identifier as a UUID."""
    try:
        return UUID(str(value))
    except (TypeError, ValueError) as e:
        raise MalformedIdentifierError(name, value) from e


def gateway(
    *,
    route_class: RouteClass = RouteClass.DEFAULT,
    body: str | None = None,
    query: str | None = None,
    ids: Sequence[str] = (),
    roles: Iterable[UserRole] | None = None,
    authenticated: bool = True,
):
    """
    Build the pipeline dependency for one route.

    Args:
        route_class: Rate budget class
        body: Schema id for the JSON body (None: body is ignored)
        query: Schema id for the query string
        ids: Path parameter names that must be UUIDs
        roles: Roles allowed on the route (None: any authenticated role)
        authenticated: False for public routes

    Returns:
        An async dependency returning a GatewayContext
    """
    required_roles = frozenset(roles) if roles is not None else None

    async def dependency(
        request: Request,
        db: AsyncSession = Depends(get_db),
        credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    ) -> GatewayContext:
        # 1. Rate governor
        rate_key = client_identity(request)
        decision = await get_rate_governor().admit(rate_key, route_class)
        if not decision.allowed:
            raise RateLimitExceeded(decision.retry_after_seconds)

        # 2. Sanitizer (body, query and path independently)
        raw_body = await read_json_body(request) if body else None
        clean_body = sanitize(raw_body)
        clean_query = sanitize(dict(request.query_params))
        clean_path = sanitize(dict(request.path_params))

        # 3. Schema validator
        parsed_ids = {name: parse_identifier(name, clean_path.get(name)) for name in ids}
        body_model: BaseModel | None = validate(body, clean_body) if body else None
        query_model: BaseModel | None = validate(query, clean_query) if query else None

        # 4. Identity & role gate
        principal = None
        if authenticated:
            token = credentials.credentials if credentials else None
            principal = await authenticate(db, token)
            authorize(principal, required_roles)

        return GatewayContext(
            db=db,
            rate_key=rate_key,
            route_class=route_class,
            principal=principal,
            body=body_model,
            query=query_model,
            ids=parsed_ids,
        )

    return dependency


__all__ = [
    "GatewayContext",
    "bearer_scheme",
    "client_identity",
    "gateway",
    "parse_identifier",
    "read_json_body",
]
