import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chatrelay.core.config import settings
from chatrelay.core.database import init_db
from chatrelay.core.exceptions import ChatRelayError
from chatrelay.core.security import require_namespace
from chatrelay.api import chat, chats, share, tool
from chatrelay.services.storage.store import drain_mirrors

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Configure logging based on debug setting
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s" if settings.debug
        else "%(levelname)-8s %(name)s: %(message)s",
    )

    init_db()
    for directory in (settings.data_dir, settings.archive_dir, settings.workspace_dir):
        directory.mkdir(parents=True, exist_ok=True)

    yield

    # Let in-flight archive mirrors land before shutdown
    await drain_mirrors()


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ChatRelayError)
async def chat_relay_error_handler(request: Request, exc: ChatRelayError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(chats.router, prefix="/api/chats", tags=["chats"])
app.include_router(chat.router, prefix="/api/chat", tags=["chat"])
app.include_router(
    tool.router, prefix="/api/tool", tags=["tool"], dependencies=[Depends(require_namespace)]
)
app.include_router(share.router, prefix="/api/share", tags=["share"])


@app.get("/api/health")
async def health():
    return {"status": "ok", "app": settings.app_name}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("chatrelay.main:app", host=settings.host, port=settings.port, reload=settings.debug)
