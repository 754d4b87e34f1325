"""FastAPI dependency: require_service_token.

The command layer (chat bot) authenticates end users itself and calls this
service on their behalf, passing their stable user id in the path or body.
This service only authenticates the caller as a whole.

Usage in any protected router:
    from src.sw_gateway.auth.dependencies import require_service_token

    router = APIRouter(dependencies=[Depends(require_service_token)])
"""

import secrets

from fastapi import Header

from config.settings import settings
from src.sw_common.errors import InvalidServiceTokenError


async def require_service_token(
    x_service_token: str | None = Header(None, alias="X-Service-Token"),
) -> None:
    """Raise InvalidServiceTokenError (401) unless the header matches SERVICE_TOKEN.

    An unset SERVICE_TOKEN rejects every call.
    """
    expected = settings.SERVICE_TOKEN
    if not expected or not x_service_token:
        raise InvalidServiceTokenError()
    if not secrets.compare_digest(x_service_token.encode(), expected.encode()):
        raise InvalidServiceTokenError()
