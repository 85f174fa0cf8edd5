from __future__ import annotations
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..interpreter import FeedbackResult
from ..relay import EssayAnalysisRelay
from ..settings import Settings, get_settings

router = APIRouter(tags=["analysis"])


class AnalyzeEssayRequest(BaseModel):
	# Type is checked by the relay so a non-string essay gets the same 400 as a missing one
	essay: Optional[Any] = None


def get_relay(settings: Settings = Depends(get_settings)) -> EssayAnalysisRelay:
	return EssayAnalysisRelay(settings)


@router.post("/analyze-essay", response_model=FeedbackResult)
async def analyze_essay(req: Optional[AnalyzeEssayRequest] = None, relay: EssayAnalysisRelay = Depends(get_relay)):
	essay = req.essay if req is not None else None
	return await relay.analyze(essay)
