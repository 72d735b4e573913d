"""FastAPI endpoints under /api.

Endpoint groups: episodes (authored content and stored rewards), sessions
(one in-process play session each: state, choices, replay, reward) and live
(sessions whose scenes are generated turn by turn). Sessions are held in
memory and do not survive a restart.
"""

from fastapi import APIRouter

from .episodes import router as episodes_router
from .live import router as live_router
from .sessions import router as sessions_router

router = APIRouter()
router.include_router(episodes_router)
router.include_router(sessions_router)
router.include_router(live_router)
