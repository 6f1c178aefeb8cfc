"""
Shared FastAPI dependencies

Resolves the calling actor from the bearer token and hands endpoints the
application's notification dispatcher.
"""
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from atelier.core.permissions import Actor
from atelier.core.security import get_actor_from_token
from atelier.exceptions import UnauthorizedError
from atelier.services.notifications import NotificationDispatcher, NullNotificationDispatcher

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Actor:
    """
    Resolve the actor from the Authorization header.

    Raises UnauthorizedError (401) for a missing, expired or malformed token.
    Role checks happen in the service layer.
    """
    if credentials is None:
        raise UnauthorizedError("Not authenticated")

    actor = get_actor_from_token(credentials.credentials)
    if actor is None:
        raise UnauthorizedError("Could not validate credentials")
    return actor


def get_notification_dispatcher(request: Request) -> NotificationDispatcher:
    """Dispatcher created in the app lifespan; a no-op one if none was set up."""
    dispatcher = getattr(request.app.state, "notification_dispatcher", None)
    if dispatcher is None:
        return NullNotificationDispatcher()
    return dispatcher
