"""
FastAPI routers grouped by domain (auth, projects, tasks, admin, public).

Each module exposes an APIRouter included by ``kushl.app``. Routers call the
service functions directly and translate their failures into HTTP errors.
"""
