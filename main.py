from fastapi import FastAPI
from contextlib import asynccontextmanager
from league_engine.database import create_db_and_tables
from league_engine.logging_config import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    setup_logging()
    create_db_and_tables()
    yield


# Initialize FastAPI app
app = FastAPI(
    title="Prediction League Engine",
    description="Scoring, ranking, boosts and prize settlement for prediction leagues",
    version="1.0.0",
    lifespan=lifespan
)

# Include routers
from league_engine.routers import tasks, leagues

app.include_router(tasks.router)
app.include_router(leagues.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
