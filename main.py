import sys
import os
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
import uvicorn
import firebase_admin
from firebase_admin import credentials

from config.portal_config import FIREBASE_CREDENTIALS_PATH, DEVELOPMENT_MODE
from database.operations import init_db
from routes.settings_router import router as settings_router
from timeline.router import parent_router as timeline_parent_router
from timeline.router import admin_router as timeline_admin_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Guardian Portal API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(timeline_parent_router)
app.include_router(timeline_admin_router)
app.include_router(settings_router)

def initialize_firebase():
    """Initialize Firebase Admin SDK with service account key"""
    if firebase_admin._apps:
        return
    try:
        if os.path.exists(FIREBASE_CREDENTIALS_PATH):
            cred = credentials.Certificate(FIREBASE_CREDENTIALS_PATH)
            firebase_admin.initialize_app(cred)
            logger.info("✅ Firebase Admin SDK initialized with service account key")
        elif DEVELOPMENT_MODE:
            logger.warning("⚠️ Firebase service account key not found, running with auth bypass")
        else:
            logger.error("❌ Firebase service account key not found at: " + FIREBASE_CREDENTIALS_PATH)
            raise FileNotFoundError("Firebase service account key not found")
    except Exception as e:
        logger.error(f"❌ Firebase Admin SDK initialization failed: {e}")
        raise

@app.on_event("startup")
async def startup_event():
    """Initialize services on startup"""
    logger.info("🚀 Guardian Portal API starting up...")
    initialize_firebase()
    init_db()

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("🛑 Guardian Portal API shutting down...")

@app.get("/")
async def root():
    return {
        "message": "Guardian Portal API is running",
        "version": "1.0.0",
    }

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
