from fastapi import HTTPException, Depends, Header
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from firebase_admin import auth as firebase_auth
from typing import List, Optional
import logging

from config.portal_config import DEVELOPMENT_MODE, STAFF_ROLES

logger = logging.getLogger(__name__)

# Security dependency
security = HTTPBearer()

def _member_schools(decoded_token: dict) -> List[str]:
    """Schools listed in the token's custom claims, primary school first"""
    schools = [s for s in decoded_token.get('school_ids') or [] if s]
    primary = decoded_token.get('school_id')
    if primary and primary not in schools:
        schools.insert(0, primary)
    return schools

def _select_school(uid: str, schools: List[str], requested: Optional[str]) -> Optional[str]:
    if not requested:
        return schools[0] if schools else None
    if requested not in schools:
        logger.warning(f"⚠️ User {uid} requested school {requested} outside their claims")
        raise HTTPException(status_code=403, detail="Not a member of the requested school")
    return requested

def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    x_school_id: Optional[str] = Header(None)
):
    """Dependency to get the current authenticated Firebase user and school context"""

    if DEVELOPMENT_MODE:
        logger.warning("🚧 DEVELOPMENT MODE: Bypassing Firebase Auth")
        return {
            "user_id": "dev_user_123",
            "firebase_uid": "dev_user_123",
            "email": "dev@test.com",
            "role": "admin",
            "school_id": x_school_id or "dev_school",
        }

    try:
        # Verify the Firebase ID token
        decoded_token = firebase_auth.verify_id_token(credentials.credentials)
        logger.info(f"✅ Token verified for user: {decoded_token.get('email')}")

    except firebase_auth.ExpiredIdTokenError as e:
        logger.error(f"❌ Expired Firebase ID token: {e}")
        raise HTTPException(status_code=401, detail="Expired Firebase ID token")
    except firebase_auth.InvalidIdTokenError as e:
        logger.error(f"❌ Invalid Firebase ID token: {e}")
        raise HTTPException(status_code=401, detail="Invalid Firebase ID token")
    except Exception as e:
        logger.error(f"❌ User verification failed: {e}")
        raise HTTPException(status_code=401, detail="Authentication failed")

    uid = decoded_token['uid']
    # header only picks among the schools the token already grants
    school_id = _select_school(uid, _member_schools(decoded_token), x_school_id)

    return {
        "user_id": uid,
        "firebase_uid": uid,
        "email": decoded_token.get('email'),
        "role": decoded_token.get('role'),
        "school_id": school_id,
    }

def get_school_id(current_user: dict = Depends(get_current_user)) -> str:
    """Dependency resolving the school every request is scoped to"""
    school_id = current_user.get("school_id")
    if not school_id:
        raise HTTPException(status_code=400, detail="No school selected")
    return school_id

def require_staff(current_user: dict = Depends(get_current_user)) -> dict:
    """Dependency for routes that change a school's configuration"""
    if current_user.get("role") not in STAFF_ROLES:
        logger.warning(f"⚠️ User {current_user.get('user_id')} is not staff, refusing admin access")
        raise HTTPException(status_code=403, detail="Staff access required")
    return current_user
