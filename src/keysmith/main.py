import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from keysmith.config import settings
from keysmith.logging import setup_logging
from keysmith.core.errors import ApiError, InvalidInput
from keysmith.core.request_id import RequestIdMiddleware
from keysmith.api.health import router as health_router
from keysmith.api.keys import router as keys_router
from keysmith.api.summarizer import router as summarizer_router
from keysmith.deps.db import engine


setup_logging(settings.log_level)
logger = logging.getLogger("keysmith")

app = FastAPI(title="Keysmith", version="0.1.0")

app.add_middleware(RequestIdMiddleware)
app.include_router(health_router)
app.include_router(keys_router)
app.include_router(summarizer_router)

@app.on_event("shutdown")
async def shutdown():
    await engine.dispose()

@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    # keep one error contract: malformed bodies and ids are invalid_input, not 422
    first = exc.errors()[0] if exc.errors() else {}
    loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{loc}: {first.get('msg')}" if loc else InvalidInput.default_message
    return JSONResponse(status_code=400, content=InvalidInput(message).to_payload())

@app.middleware("http")
async def log_request_completed(request: Request, call_next):
    response = await call_next(request)

    request_id = getattr(request.state, "request_id", None)
    api_key_id = getattr(request.state, "api_key_id", None)
    if request_id:
        logger.info(
            "request_completed",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "api_key_id": str(api_key_id) if api_key_id else None,
            },
        )

    return response
