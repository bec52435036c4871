"""
FastAPI routers grouped by domain (auth, cache, profile).

Each module exposes an APIRouter included by the application factory; the
services they call are read from app.state so tests can swap them.
"""
