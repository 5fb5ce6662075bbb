"""Ad-hoc analysis endpoint used by the agent browser extension."""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel
from slowapi import Limiter
from slowapi.util import get_remote_address

from agent_relay.config import settings
from agent_relay.dependencies import RelayContainer, get_container
from agent_relay.schemas.events import AnalysisResult

router = APIRouter()
limiter = Limiter(key_func=get_remote_address)

MESSAGE_ANALYSIS_EVENT = "message_analysis"


class AnalyzeRequest(BaseModel):
    message: Optional[str] = None


class AnalyzeResponse(BaseModel):
    success: bool
    analysis: AnalysisResult


def analyze_rate_limit() -> str:
    return settings.analyze_rate_limit


@router.post("/analyze", response_model=AnalyzeResponse)
@limiter.limit(analyze_rate_limit)
async def analyze_message(
    request: Request,
    payload: AnalyzeRequest,
    relay: RelayContainer = Depends(get_container),
):
    if not payload.message or not payload.message.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message content is required")

    analysis = await relay.analyzer.analyze(payload.message)

    await relay.hub.broadcast(
        MESSAGE_ANALYSIS_EVENT,
        {
            **analysis.model_dump(),
            "message": payload.message,
            "created_at": datetime.now(timezone.utc).isoformat(),
        },
    )
    return AnalyzeResponse(success=True, analysis=analysis)
