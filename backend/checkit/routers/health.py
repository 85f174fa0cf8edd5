from fastapi import APIRouter, Depends

from ..settings import Settings, get_settings

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
	return {"status": "ok"}


@router.get("/info")
def info(settings: Settings = Depends(get_settings)):
	return {
		"status": "ok",
		"bedrock_configured": settings.bedrock_configured,
		"region": settings.aws_region,
		"invocation_mode": settings.bedrock_invocation_mode,
	}
