# app/main.py
import os
import time
import logging
import uuid
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from app.errors import ErrorKind, WorkoutError
from app.routers.admin import router as admin_router
from app.routers.auth import router as auth_router
from app.routers.media import router as media_router
from app.routers.programs import router as programs_router
from app.routers.progression import router as progression_router
from app.routers.users import router as users_router
from app.routers.workouts import router as workouts_router
from app.db import SessionLocal  # for healthz DB check

log = logging.getLogger("uvicorn")

app = FastAPI(
    title="PT Coach API",
    openapi_tags=[
        {"name": "auth", "description": "Registration & login"},
        {"name": "users", "description": "User administration"},
        {"name": "programs", "description": "Programs assigned to the current user"},
        {"name": "workouts", "description": "Workout session runner"},
        {"name": "progression", "description": "Reps and weight progression"},
        {"name": "admin", "description": "Template authoring and program assignment"},
        {"name": "media", "description": "Exercise video links"},
    ],
)


# CORS (relax for local dev; tighten origins in prod via env)
ALLOW_ORIGINS = os.getenv("ALLOW_ORIGINS", "*").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOW_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Kinds the client may retry by re-sending the same request
RETRYABLE = {ErrorKind.network, ErrorKind.constraint_race, ErrorKind.unknown}

@app.exception_handler(WorkoutError)
async def workout_error_handler(request: Request, exc: WorkoutError):
    log.warning("%s %s -> %s %s: %s", request.method, request.url.path,
                exc.kind.value, exc.code, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.to_dict(retryable=exc.kind in RETRYABLE)},
    )

@app.middleware("http")
async def add_request_id_and_log(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    response.headers["X-Request-ID"] = req_id
    log.info("rid=%s %s %s -> %s in %.1fms",
             req_id, request.method, request.url.path, response.status_code, duration_ms)
    return response

@app.get("/")
def root():
    return {"ok": True, "name": "PT Coach API"}

@app.get("/ping")
def ping():
    return {"pong": True}

@app.get("/healthz")
def healthz():
    # Quick DB sanity check
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1"))
        return {"status": "ok"}
    except Exception as e:
        return {"status": "degraded", "error": str(e)}

@app.get("/version")
def version():
    return {"version": os.getenv("API_VERSION", "dev")}

# Routers
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(programs_router)
app.include_router(workouts_router)
app.include_router(progression_router)
app.include_router(admin_router)
app.include_router(media_router)
