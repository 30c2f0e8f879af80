import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from notable_backend.api.notes_router import router as notes_router
from notable_backend.api.users_router import router as users_router
from notable_backend.config import get_settings
from notable_backend.errors import NotableError, ValidationError

settings = get_settings()

logger = logging.getLogger(__name__)
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

# FastAPI app config
app = FastAPI(
    title="Notable Backend API",
    description="Note-taking backend: provider-backed authentication, session tokens, and notes with tags and attachments.",
    version="1.0.0",
    openapi_tags=[
        {"name": "Authentication", "description": "Registration, login, session checks, password reset"},
        {"name": "Notes", "description": "Notes, tags, attachments and status flags"},
    ],
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(notes_router)
app.include_router(users_router)


# Root Health Check
@app.get("/", summary="Health Check", tags=["General"])
def health_check():
    """Simple health check endpoint."""
    return {"message": "Healthy"}


#####################
# ERROR HANDLERS
#####################

@app.exception_handler(NotableError)
def notable_error_handler(request: Request, exc: NotableError):
    content = {"message": exc.message}
    if isinstance(exc, ValidationError):
        content["errors"] = jsonable_encoder(exc.errors)
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        return JSONResponse(status_code=exc.status_code, content=content, headers={"WWW-Authenticate": "Bearer"})
    return JSONResponse(status_code=exc.status_code, content=content)

@app.exception_handler(RequestValidationError)
def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Invalid request", "errors": jsonable_encoder(exc.errors())},
    )

@app.exception_handler(StarletteHTTPException)
def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = "Not found" if exc.status_code == status.HTTP_404_NOT_FOUND else exc.detail
    return JSONResponse(status_code=exc.status_code, content={"message": message}, headers=exc.headers)

@app.exception_handler(SQLAlchemyError)
def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Store error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": str(exc)},
    )


# PUBLIC_INTERFACE
def run():
    """Serve the app with uvicorn on the configured port."""
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
