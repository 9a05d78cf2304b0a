"""
asgi.py -- Application assembly for AuthGate.

This is the ONLY module that reads configuration at import time. A missing
JWT_SECRET or DATABASE_URL raises here, so uvicorn refuses to start instead of
serving requests with a broken setup.

Run with:  uvicorn asgi:app --reload
"""

from api.main import create_app
from core.config import get_settings

app = create_app(get_settings())
