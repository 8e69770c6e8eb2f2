from fastapi import FastAPI

from crosspost.api.v1.router import router as v1_router
from crosspost.core.telemetry import setup_telemetry

app = FastAPI(title="Crosspost API", version="0.1.0")

setup_telemetry(app)
app.include_router(v1_router)
