"""
Configuration for the Course Planner Backend

Loads settings from backend/.env. Firebase Admin SDK provides the Firestore
client that holds the course catalog, degree requirements, prerequisite
data and student enrollments.
"""

import os
from pathlib import Path

import firebase_admin
from firebase_admin import credentials, firestore
from dotenv import load_dotenv

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path)

# Firebase configuration from environment variables
FIREBASE_CONFIG = {
    "apiKey": os.getenv("FIREBASE_API_KEY"),
    "authDomain": os.getenv("FIREBASE_AUTH_DOMAIN"),
    "projectId": os.getenv("FIREBASE_PROJECT_ID"),
    "storageBucket": os.getenv("FIREBASE_STORAGE_BUCKET"),
    "messagingSenderId": os.getenv("FIREBASE_MESSAGING_SENDER_ID"),
    "appId": os.getenv("FIREBASE_APP_ID")
}

# Service account key path
SERVICE_ACCOUNT_PATH = os.getenv("FIREBASE_SERVICE_ACCOUNT_PATH", "serviceAccountKey.json")

# Redis plan cache
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
REDIS_DB = int(os.getenv("REDIS_DB", "0"))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", None)
PLAN_CACHE_TTL = int(os.getenv("PLAN_CACHE_TTL", "3600"))

# Advisory annotation (optional)
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
ANNOTATION_MODEL = os.getenv("ANNOTATION_MODEL", "gpt-4o-mini")
ANNOTATION_TIMEOUT_SECONDS = float(os.getenv("ANNOTATION_TIMEOUT_SECONDS", "30"))

# Planning defaults
DEFAULT_YEARS_REMAINING = int(os.getenv("DEFAULT_YEARS_REMAINING", "4"))

# Global Firestore client
_db = None


def initialize_firebase():
    """
    Initialize Firebase Admin SDK.

    Uses the service account key when one is found, otherwise default
    credentials (cloud environments).
    """
    global _db

    if _db is not None:
        return _db

    # Build possible paths for service account key
    backend_dir = Path(__file__).parent.parent
    possible_paths = [
        backend_dir / SERVICE_ACCOUNT_PATH,             # backend/key.json
        Path("backend") / SERVICE_ACCOUNT_PATH,         # From project root
        Path(SERVICE_ACCOUNT_PATH)                      # Direct path
    ]

    if not firebase_admin._apps:
        for path in possible_paths:
            if path.exists():
                cred = credentials.Certificate(str(path))
                firebase_admin.initialize_app(cred)
                break
        else:
            firebase_admin.initialize_app(options={
                'projectId': FIREBASE_CONFIG['projectId']
            })

    _db = firestore.client()
    return _db


def get_firestore_client():
    """Get the Firestore client instance."""
    global _db
    if _db is None:
        _db = initialize_firebase()
    return _db
