import logging

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from visacheck.api.v1.evaluations import router as evaluations_router
from visacheck.api.v1.health import router as health_router
from visacheck.api.v1.visas import router as visas_router
from visacheck.core.config import settings
from visacheck.core.cors import cors_allow_origin_regex, cors_allowed_origins
from visacheck.core.lifespan import lifespan

logging.basicConfig(level=settings.log_level, format="%(message)s")
if settings.sentry_dsn:
    sentry_sdk.init(dsn=settings.sentry_dsn)

app = FastAPI(title="Visa Eligibility Check API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_allowed_origins(),
    allow_origin_regex=cors_allow_origin_regex(),
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router, prefix="/v1", tags=["Health"])
app.include_router(visas_router, prefix="/v1", tags=["Visas"])
app.include_router(evaluations_router, prefix="/v1", tags=["Evaluations"])
