from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cl_yield.api.routers.yields import router as yields_router
from cl_yield.shared.config import get_settings
from cl_yield.shared.logging import setup_logging


setup_logging(get_settings().log_level)

app = FastAPI(title="CL Yield API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(yields_router)
