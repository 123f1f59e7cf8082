"""
RAPTOR - Recursive Abstractive Processing for Tree-Organized Retrieval
FastAPI backend that turns flat text into a tree of cluster summaries.
"""

from contextlib import asynccontextmanager
import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from routers import raptor
from errors import register_exception_handlers
from logging_config import setup_logging
from config import runtime_config

logger = logging.getLogger(__name__)

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown events"""
    setup_logging(getattr(logging, LOG_LEVEL, logging.INFO))
    logger.info(
        f"RAPTOR service starting (llm={runtime_config.llm_base_url}, "
        f"chat_model={runtime_config.llm_chat_model}, embed_model={runtime_config.llm_embed_model})"
    )
    yield
    logger.info("RAPTOR service signing off")


app = FastAPI(
    title=raptor.SERVICE_NAME,
    description="Hierarchical summarization trees over plain text",
    version=raptor.SERVICE_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=runtime_config.get_cors_origins(),
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(raptor.router, prefix="/api/raptor", tags=["raptor"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))
