from fastapi import APIRouter, Depends, HTTPException
import logging

from database.operations import get_setting, set_setting
from dependencies import get_school_id, require_staff
from timeline.models import SettingUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/settings", tags=["settings"])

@router.get("/{key}")
async def read_setting(key: str, school_id: str = Depends(get_school_id)):
    """Read a per-school setting; missing keys return null"""
    try:
        value = get_setting(school_id, key)
        return {"key": key, "value": value}
    except Exception as e:
        logger.error(f"❌ Error reading setting {key}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to read setting {key}")

@router.put("/{key}")
async def write_setting(
    key: str,
    payload: SettingUpdate,
    school_id: str = Depends(get_school_id),
    current_user: dict = Depends(require_staff)
):
    """Create or replace a per-school setting"""
    if not set_setting(school_id, key, payload.value, updated_by=current_user.get("user_id")):
        raise HTTPException(status_code=500, detail=f"Failed to save setting {key}")
    return {"key": key, "value": payload.value}
