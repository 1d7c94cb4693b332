from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from esystem.auth import Caller, get_caller
from esystem.boundary import respond

router = APIRouter(prefix="/v1/auth", tags=["esystem-auth"])


@router.get("/me")
async def me(caller: Caller = Depends(get_caller)) -> JSONResponse:
    """Return the verified identity of the caller."""
    return respond(caller.user.model_dump(mode="json", by_alias=True))
