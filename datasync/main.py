import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from datasync.config import get_settings
from datasync.routers import api_router

settings = get_settings()
log_level_name = (settings.log_level or "INFO").upper()
log_level = getattr(logging, log_level_name, logging.INFO)
logging.getLogger("datasync").setLevel(log_level)

app = FastAPI(title=settings.app_name)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.frontend_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(api_router, prefix="/api")


@app.get("/health", tags=["Health"])
def health_check() -> dict[str, str]:
    return {"status": "ok"}
