import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from httpx import HTTPStatusError

from qr_attendance.config import settings
from qr_attendance.routers import auth, teacher, student

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Smart QR Attendance API",
    description="QR-code attendance sessions, marking and teacher analytics",
    version="1.0.0"
)

# --- CORS Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception Handlers ---
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Custom handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Validation Error", "errors": jsonable_errors(exc)},
    )

@app.exception_handler(HTTPStatusError)
async def http_status_error_handler(request: Request, exc: HTTPStatusError):
    """Custom handler for errors from the hosted backend (httpx)."""
    logger.error("Upstream error %s on %s", exc.response.status_code, request.url.path)
    return JSONResponse(
        status_code=exc.response.status_code,
        content={"detail": f"Error from external service: {exc.response.text}"},
    )

@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Catch-all handler for unexpected errors."""
    logger.exception("Unhandled error on %s", request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An unexpected internal server error occurred.", "error": str(exc)},
    )

def jsonable_errors(exc: RequestValidationError):
    # ctx may hold exception instances, which aren't JSON serializable
    return [{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()]

# --- API Routers ---
app.include_router(auth.router)
app.include_router(teacher.router)
app.include_router(student.router)

@app.get("/", tags=["Root"])
async def read_root():
    """Root endpoint for health checks."""
    return {"message": "Welcome to Smart QR Attendance API"}
