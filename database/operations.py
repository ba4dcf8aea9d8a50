from .connection import SessionLocal, engine, Base
from .models import AppSetting
import logging
from datetime import datetime
from contextlib import contextmanager
from typing import Optional

logger = logging.getLogger(__name__)

@contextmanager
def get_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def init_db():
    Base.metadata.create_all(bind=engine)
    logger.info("✅ Portal tables created/verified")

# --- APP SETTINGS (per-school key/value)

def get_setting(school_id: str, key: str) -> Optional[str]:
    with get_session() as db:
        setting = db.query(AppSetting).filter(
            AppSetting.school_id == school_id,
            AppSetting.key == key
        ).first()
        value = setting.value if setting else None
        logger.info(f"📋 Retrieved setting {key}={value!r} for school {school_id}")
        return value

def set_setting(school_id: str, key: str, value: str, updated_by: str = None) -> bool:
    with get_session() as db:
        try:
            now = datetime.now().isoformat()
            setting = db.query(AppSetting).filter(
                AppSetting.school_id == school_id,
                AppSetting.key == key
            ).first()
            if setting:
                setting.value = value
                setting.updated_at = now
                setting.updated_by = updated_by
            else:
                db.add(AppSetting(
                    school_id=school_id,
                    key=key,
                    value=value,
                    updated_at=now,
                    updated_by=updated_by
                ))
            db.commit()
            logger.info(f"✅ Saved setting {key}={value!r} for school {school_id}")
            return True
        except Exception as e:
            logger.error(f"❌ Error saving setting {key}: {e}")
            db.rollback()
            return False
