import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import THRESHOLDS_FILE
from routers.studies import init_studies, router as studies_router
from services.analysis.thresholds import load_thresholds
from services.study_registry import discover_datasets

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: load datasets and alert thresholds
    print("Loading study datasets...")
    datasets = discover_datasets()
    print(f"Found {len(datasets)} studies: {list(datasets.keys())}")
    init_studies(datasets, load_thresholds(THRESHOLDS_FILE))
    print("Alert thresholds loaded.")
    yield


app = FastAPI(title="DART Study Monitor", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(studies_router)
