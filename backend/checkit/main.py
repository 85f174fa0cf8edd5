from __future__ import annotations
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import RelayError, ValidationError
from .routers import analyze, health
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

CORS_ALLOW_HEADERS = "authorization, x-client-info, apikey, content-type"
CORS_ALLOW_METHODS = "GET,POST,OPTIONS"


def cors_headers(settings: Settings) -> dict:
	return {
		"Access-Control-Allow-Origin": settings.cors_allow_origin,
		"Access-Control-Allow-Headers": CORS_ALLOW_HEADERS,
		"Access-Control-Allow-Methods": CORS_ALLOW_METHODS,
	}


def create_app(settings: Optional[Settings] = None) -> FastAPI:
	settings = settings or get_settings()
	logging.basicConfig(level=settings.log_level.upper())

	app = FastAPI(title="Checkit Essay Analysis Relay")
	if settings is not get_settings():
		app.dependency_overrides[get_settings] = lambda: settings
	app.include_router(health.router)
	app.include_router(analyze.router)

	headers = cors_headers(settings)

	@app.middleware("http")
	async def cors(request: Request, call_next):
		# Preflight on any path: no body, just the CORS headers
		if request.method == "OPTIONS":
			return Response(status_code=204, headers=headers)
		response = await call_next(request)
		response.headers.update(headers)
		return response

	@app.exception_handler(RelayError)
	async def relay_error_handler(request: Request, exc: RelayError):
		if isinstance(exc, ValidationError):
			logger.warning("Rejected essay analysis request: %s", exc.message)
		else:
			logger.error("Essay analysis failed (%s): %s", exc.__class__.__name__, exc.message)
		payload = exc.to_payload(secrets=[settings.aws_secret_access_key])
		return JSONResponse(status_code=exc.status_code, content=payload)

	@app.exception_handler(RequestValidationError)
	async def request_validation_handler(request: Request, exc: RequestValidationError):
		if any(err.get("type") == "json_invalid" for err in exc.errors()):
			message = "Invalid JSON in request body"
		else:
			message = "Invalid request body"
		logger.warning("%s: %s", message, exc.errors())
		return JSONResponse(status_code=400, content={"success": False, "error": message})

	@app.exception_handler(StarletteHTTPException)
	async def http_error_handler(request: Request, exc: StarletteHTTPException):
		message = "Not found" if exc.status_code == 404 else str(exc.detail)
		return JSONResponse(
			status_code=exc.status_code,
			content={"success": False, "error": message},
			headers=getattr(exc, "headers", None),
		)

	return app


app = create_app()


def run() -> None:
	import uvicorn

	settings = get_settings()
	logger.info("Checkit relay listening on http://%s:%s/analyze-essay", settings.host, settings.port)
	uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
	run()
