"""FastAPI bracket API."""
import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession

import config
from engine.models import get_async_session, init_db
from engine.services.bracket_view import project_bracket
from engine.services.repository import BracketRepository
from web.api.routes import router as api_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(level=config.LOG_LEVEL)
    await init_db()
    yield


app = FastAPI(title="Bracketeer API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(api_router)


@app.get("/api/tournaments/{tournament_id}/bracket")
async def get_bracket(tournament_id: int, session: AsyncSession = Depends(get_async_session)):
    """Live bracket: rounds with labels, slots, status and results."""
    repo = BracketRepository(session)
    t = await repo.get_tournament(tournament_id)
    if not t:
        raise HTTPException(404, "Tournament not found")
    bracket = await repo.get_bracket(tournament_id)
    if not bracket:
        raise HTTPException(404, "No bracket generated")
    matches = await repo.list_matches(tournament_id)
    view = project_bracket(
        bracket.bracket_type,
        matches,
        bracket.bracket_data.get("participant_count", 0),
    )
    return {
        "tournament": {"id": t.id, "name": t.name, "status": t.status},
        "bracket_type": bracket.bracket_type,
        **view,
    }


@app.get("/api/health")
async def health():
    return {"status": "ok"}
