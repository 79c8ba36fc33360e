# supportdesk/main.py
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from supportdesk.auth.routes import router as auth_router
from supportdesk.core.config import get_settings
from supportdesk.core.database import init_db
from supportdesk.core.errors import SupportDeskError, ValidationError
from supportdesk.core.logging import get_logger, setup_logging
from supportdesk.ticket.routes import router as ticket_router

setup_logging()
logger = get_logger(__name__)

init_db()

settings = get_settings()
app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESC,
    version=settings.APP_VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SupportDeskError)
async def support_desk_error_handler(request: Request, exc: SupportDeskError):
    body = {"detail": exc.detail, "code": exc.code}
    if isinstance(exc, ValidationError) and exc.field:
        body["field"] = exc.field
    logger.info(
        "request_rejected",
        path=request.url.path,
        method=request.method,
        code=exc.code,
        status_code=exc.status_code,
    )
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=body, headers=headers)


# Routers
app.include_router(auth_router)
app.include_router(ticket_router)


@app.get("/health", tags=["Health"])
def health():
    return {"status": "ok"}
