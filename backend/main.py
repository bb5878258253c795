import logging
import os
import sys
from contextlib import asynccontextmanager

# Ensure this directory is in the path for uvicorn and other runners
current_dir = os.path.dirname(os.path.abspath(__file__))
if current_dir not in sys.path:
    sys.path.append(current_dir)

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from database import init_db
from errors import CommitmentError
from routes.daily_log_routes import router as daily_log_router
from routes.promise_routes import router as promise_router
from routes.review_routes import router as review_router
from routes.sprint_routes import router as sprint_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title="Promise Keeper", lifespan=lifespan)


@app.exception_handler(CommitmentError)
async def commitment_error_handler(request: Request, exc: CommitmentError):
    if exc.status_code == 409:
        logger.warning(f"{request.method} {request.url.path} -> {exc.error_code}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error_code": exc.error_code},
        headers={"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None,
    )


@app.get("/api/v1/health-check")
async def health():
    return {"status": "ok", "message": "Backend is alive!"}


app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sprint_router)
app.include_router(promise_router)
app.include_router(daily_log_router)
app.include_router(review_router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
