"""
MealCoach Web - FastAPI application.

Serves the meal plan JSON contracts (coverage, shopping list, tuning
suggestions, guardrails terms) to the web frontend.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from mealcoach import __version__
from mealcoach.config import configure_logging
from mealcoach.web.meal_plan_routes import router as meal_plan_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info(f"MealCoach API {__version__} starting")
    yield


app = FastAPI(title="MealCoach", version=__version__, lifespan=lifespan)
app.include_router(meal_plan_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}
