import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from studyflow import __version__, config
from studyflow.courses.course_router import router as course_router
from studyflow.courses.database import create_course_indexes
from studyflow.errors import StudyFlowError, studyflow_error_handler
from studyflow.mongo import create_client
from studyflow.profiles.database import create_profile_indexes
from studyflow.profiles.router import router as profile_router

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="StudyFlow API", version=__version__)

# MongoDB Configuration
client = create_client(config.MONGO_URL)
db = client[config.MONGO_DB_NAME]


@app.on_event("startup")
async def startup_event():
    await create_course_indexes(db)
    await create_profile_indexes(db)
    logger.info("StudyFlow indexes created")


@app.on_event("shutdown")
async def shutdown_event():
    client.close()


app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(StudyFlowError, studyflow_error_handler)


# ==================== ROUTER REGISTRATION ====================
app.include_router(profile_router, prefix="/profiles")
app.include_router(course_router, prefix="/courses")
# ============================================================


@app.get("/health")
async def health():
    return {"status": "ok", "version": __version__}
