import sys
import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from school_exams.config import get_settings
from school_exams.infrastructure.db.session import Base, engine
from school_exams.infrastructure.db import models  # noqa: F401  registers tables
from school_exams.presentation.api.routers.online_exam_router import router as online_exam_router
from school_exams.presentation.api.routers.offline_results_router import router as offline_results_router
from school_exams.presentation.api.routers.grading_router import router as grading_router

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger(__name__)

# Create tables
if settings.create_tables_on_startup:
    Base.metadata.create_all(bind=engine)

# Initialize FastAPI app
app = FastAPI(title="School Exams API")


# Global Exception Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "An internal server error occurred."}
    )

# Include routers
app.include_router(online_exam_router)
app.include_router(offline_results_router)
app.include_router(grading_router)


@app.get("/")
def root():
    return {"message": "Welcome to the School Exams API"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
