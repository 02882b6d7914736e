from typing import Annotated, Optional
import logging

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from shoptracker.config import settings
from shoptracker.database import get_db


logger = logging.getLogger(__name__)


async def get_actor_id(request: Request) -> Optional[int]:
    """
    Acting user id from the actor header.

    Authentication happens upstream; this service only records who did
    what in the audit trail.
    """
    raw = request.headers.get(settings.ACTOR_HEADER)
    if not raw:
        return settings.DEFAULT_ACTOR_ID

    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid {settings.ACTOR_HEADER} header: {raw!r}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{settings.ACTOR_HEADER} must be an integer user id",
        )


# Type aliases for cleaner dependency injection
DB = Annotated[AsyncSession, Depends(get_db)]
ActorId = Annotated[Optional[int], Depends(get_actor_id)]
