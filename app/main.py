import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.core.exceptions import ErrorKind, ServiceError
from app.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from app.database.supabase_client import SupabaseClient
from app.modules.auth import routes as auth_routes
from app.modules.users import routes as users_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    redirect_slashes=False,
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    if exc.kind is ErrorKind.UNEXPECTED:
        logger.error("Unexpected error on %s %s: %s", request.method, request.url.path, exc.message,
                     exc_info=exc.__cause__ or exc)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})
    logger.warning("%s on %s %s: %s", exc.kind.value, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def _format_validation_error(error: dict) -> str:
    location = [str(part) for part in error.get("loc", ()) if part != "body"]
    if location:
        return f"{'.'.join(location)}: {error.get('msg')}"
    return str(error.get("msg"))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [_format_validation_error(error) for error in exc.errors()]
    return JSONResponse(status_code=400, content={"error": "Validation failed", "details": details})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and exc.detail == "Not Found":
        logger.warning("Route not found: %s %s", request.method, request.url.path)
        return JSONResponse(status_code=404, content={"error": "Route not found"})
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

# Include module routes
app.include_router(auth_routes.router, prefix="/api")
app.include_router(users_routes.router, prefix="/api")


@app.on_event("startup")
async def startup_event():
    await SupabaseClient.init()
    logger.info("Auth service running on port %s", settings.port)
    logger.info("Environment: %s", settings.environment)


@app.on_event("shutdown")
async def shutdown_event():
    SupabaseClient.reset_client()
    logger.info("Application shutdown")


@app.get("/health")
async def health():
    return {"status": "ok", "service": settings.app_name}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)
