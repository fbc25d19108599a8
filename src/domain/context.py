from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from .entities.enums import GlobalRole


class TenantContext(BaseModel):
    """Authenticated actor, passed explicitly into every operation"""

    model_config = ConfigDict(frozen=True)

    tenant_id: UUID
    user_id: UUID
    global_role: GlobalRole
    active: bool = True
    # Row version as re-read inside the current unit of work; None until refreshed
    version: Optional[int] = None
