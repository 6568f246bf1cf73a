import logging
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, get_settings
from .database.base import Storage
from .database.db import SQLStorage
from .errors import TutorError, ValidationError
from .routes import router
from .services.llm.base import BaseCompletionService
from .services.llm.groq import GroqCompletionService
from .uploads import UploadStore

load_dotenv()

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=level.upper(),
        format="\033[36m%(asctime)s\033[0m - \033[32m%(name)s\033[0m - \033[1;33m%(levelname)s\033[0m - %(message)s",
    )


async def tutor_error_handler(request: Request, exc: TutorError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.warning(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    # Framework errors (unknown route, wrong method) use the same body as ours
    code = {404: "not_found", 405: "method_not_allowed"}.get(exc.status_code, "http_error")
    error = TutorError(str(exc.detail), code=code, status_code=exc.status_code)
    return await tutor_error_handler(request, error)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    # Body schema failures are reported like any other ValidationError
    details = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in exc.errors()
    )
    return await tutor_error_handler(request, ValidationError(details))


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[Storage] = None,
    llm: Optional[BaseCompletionService] = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    uploads = UploadStore(
        settings.upload_dir,
        max_bytes=settings.max_upload_bytes,
        allowed_types=settings.allowed_upload_types,
    )

    app = FastAPI(title="Study Tutor API")
    app.state.settings = settings
    app.state.uploads = uploads
    app.state.storage = storage or SQLStorage(settings.database_url)
    app.state.llm = llm or GroqCompletionService.from_settings(settings, uploads)

    if not settings.groq_api_key and llm is None:
        logger.warning("GROQ_API_KEY is not set; every reply will be an apology")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(TutorError, tutor_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.include_router(router)

    return app


def run():
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "studytutor.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
    )


if __name__ == "__main__":
    run()
