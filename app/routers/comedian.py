from fastapi import APIRouter, Depends

from app.auth import AdminIdentity, IdentityClaim
from app.crud import comedian_crud
from app.deps import get_current_comedian, require_admin
from app.schemas import ComedianProfile, ProfileUpdate

router = APIRouter(prefix="/comedians", tags=["comedians"])


@router.get("/", response_model=list[ComedianProfile])
async def list_comedians(
    _: AdminIdentity = Depends(require_admin),
) -> list[ComedianProfile]:
    return await comedian_crud.list_comedians()


@router.get("/me", response_model=ComedianProfile)
async def get_my_profile(
    comedian: IdentityClaim = Depends(get_current_comedian),
) -> ComedianProfile:
    """Stored profile, or a blank one seeded from the identity claim."""
    profile = await comedian_crud.get_profile(comedian.subject_id)
    if profile is not None:
        return profile
    return ComedianProfile(
        id=comedian.subject_id,
        email=comedian.email or "",
        name=comedian.display_name or "",
        is_new_user=True,
    )


@router.put("/me", response_model=ComedianProfile)
async def update_my_profile(
    payload: ProfileUpdate,
    comedian: IdentityClaim = Depends(get_current_comedian),
) -> ComedianProfile:
    return await comedian_crud.upsert_profile(comedian, payload)
