from fastapi import APIRouter, Depends

from foodlink.core.security import Actor, require_role
from foodlink.deps import get_repo
from foodlink.schemas import CoverageOut
from foodlink.services.coverage import refresh_coverage

router = APIRouter(prefix="/coverage", tags=["coverage"])


@router.get("", response_model=CoverageOut)
async def coverage(
    _staff: Actor = Depends(require_role("staff")),
    repo=Depends(get_repo),
):
    return await refresh_coverage(repo)
