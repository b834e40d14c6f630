from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
	return {"status": "ok"}


@router.get("/info")
async def info(request: Request):
	settings = request.app.state.settings
	return {
		"status": "ok",
		"gemini_configured": bool(settings.gemini_api_key),
		"gemini_provider": settings.gemini_provider,
		"grading_policy": settings.grading_policy,
		"active_sessions": len(request.app.state.sessions),
	}
