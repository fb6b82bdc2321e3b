from typing import Annotated

from fastapi import APIRouter, Depends

from domain.provenance import ProvenanceRecord, ProvenanceTracker
from routers.posts import get_provenance

router = APIRouter()


@router.get("/users/me/content", response_model=ProvenanceRecord, tags=["users"])
async def read_my_content(
    provenance: Annotated[ProvenanceTracker, Depends(get_provenance)],
):
    """IDs of the posts and comments created from this browser."""
    return provenance.snapshot()
