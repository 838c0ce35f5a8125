"""FastAPI application for the compliance answer suggestion engine."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from config import EngineSettings
from errors import NotFoundError, ValidationError
from models import (
    AcceptedAnswer,
    AnswerLibraryEntryCreate,
    AnswerLibraryEntryUpdate,
    LibraryImportRequest,
)
from repositories import (
    InMemoryAnswerLibraryRepository,
    InMemoryEvidenceRepository,
    InMemoryQuestionRepository,
    load_seed_data,
)
from services.answer_library import AnswerLibraryService
from services.llm_generator import build_text_capability
from services.suggestion_engine import SuggestionEngine
import config

# Configure logging
logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Global services
suggestion_engine: SuggestionEngine = None
answer_library: AnswerLibraryService = None
question_repository = None


def configure(
    questions=None,
    evidence=None,
    library=None,
    capability=None,
    settings: Optional[EngineSettings] = None,
    clock=None
) -> None:
    """Wire the engine and library service. Missing pieces get in-memory defaults."""
    global suggestion_engine, answer_library, question_repository

    settings = settings or EngineSettings()
    question_repository = questions if questions is not None else InMemoryQuestionRepository()
    evidence = evidence if evidence is not None else InMemoryEvidenceRepository()
    library = library if library is not None else InMemoryAnswerLibraryRepository()

    suggestion_engine = SuggestionEngine.create(
        question_repository, evidence, library, capability, settings, clock
    )
    service_kwargs = {"clock": clock} if clock else {}
    answer_library = AnswerLibraryService(library, settings, **service_kwargs)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info("Starting application...")

    if suggestion_engine is None:
        questions = InMemoryQuestionRepository()
        evidence = InMemoryEvidenceRepository()
        library = InMemoryAnswerLibraryRepository()

        if config.SEED_DATA_FILE.exists():
            load_seed_data(config.SEED_DATA_FILE, questions, evidence, library)
        else:
            logger.warning(f"Seed data file not found: {config.SEED_DATA_FILE}")

        capability = build_text_capability()
        configure(questions, evidence, library, capability)
        logger.info(f"Generative backend: {type(capability).__name__ if capability else 'disabled'}")

    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Application shutting down...")


app = FastAPI(
    title="Compliance Answer Suggestion Engine",
    description="API for ranking answer suggestions and managing the answer library",
    version="1.0.0",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"field": exc.field, "detail": exc.message})


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    generators = suggestion_engine.generators if suggestion_engine else []
    return {
        "status": "healthy",
        "generators": [g.source_type.value for g in generators],
        "generative_backend": config.GENERATIVE_BACKEND,
    }


# ----------------------------------------------------------------------
# Suggestions
# ----------------------------------------------------------------------

@app.get("/api/v1/questions/{question_id}/suggestions")
async def get_suggestions(question_id: str, organization_id: str = Query(...)):
    """Return up to five ranked answer suggestions for a question."""
    suggestions = await suggestion_engine.generate_suggestions(question_id, organization_id)
    return {"suggestions": [s.model_dump(mode="json") for s in suggestions]}


@app.post("/api/v1/questions/{question_id}/accept")
async def accept_answer(question_id: str, body: AcceptedAnswer):
    """Record an accepted answer, reinforcing or growing the answer library."""
    question = await question_repository.get_by_id(question_id)
    if question is None:
        raise NotFoundError("Question", question_id)

    entry_id = await answer_library.record_accepted_answer(
        question,
        body.answer_text,
        body.organization_id,
        body.created_by,
        source_library_id=body.source_library_id,
    )
    return {"entry_id": entry_id}


# ----------------------------------------------------------------------
# Answer library
# ----------------------------------------------------------------------

@app.get("/api/v1/answer-library")
async def list_entries(
    organization_id: str = Query(...),
    category: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = Query(50, ge=0),
    offset: int = Query(0, ge=0)
):
    entries = await answer_library.get_entries(organization_id, category, search, limit, offset)
    return {"entries": [e.model_dump(mode="json") for e in entries]}


@app.post("/api/v1/answer-library", status_code=201)
async def create_entry(body: AnswerLibraryEntryCreate, organization_id: str = Query(...)):
    entry_id = await answer_library.create_entry(
        organization_id,
        body.category,
        body.subcategory,
        body.key_phrases,
        body.standard_answer,
        body.evidence_references,
        body.created_by,
        body.metadata,
    )
    return {"entry_id": entry_id, "message": "Entry created successfully"}


@app.get("/api/v1/answer-library/search")
async def search_entries(
    organization_id: str = Query(...),
    query: str = Query(...),
    category: Optional[str] = None,
    limit: int = Query(10, ge=1)
):
    entries = await answer_library.search_entries(organization_id, query, category, limit)
    return {"entries": [e.model_dump(mode="json") for e in entries]}


@app.get("/api/v1/answer-library/stats")
async def library_stats(organization_id: str = Query(...)):
    stats = await answer_library.get_stats(organization_id)
    return stats.model_dump(mode="json")


@app.get("/api/v1/answer-library/improvements")
async def library_improvements(organization_id: str = Query(...)):
    findings = await answer_library.suggest_improvements(organization_id)
    return {"improvements": [f.model_dump(mode="json") for f in findings]}


@app.get("/api/v1/answer-library/export")
async def export_library(organization_id: str = Query(...)):
    csv_data = await answer_library.export_to_delimited_text(organization_id)
    return PlainTextResponse(
        csv_data,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="answer_library_{organization_id}.csv"'}
    )


@app.post("/api/v1/answer-library/import")
async def import_library(body: LibraryImportRequest, organization_id: str = Query(...)):
    result = await answer_library.import_from_delimited_text(organization_id, body.csv_data, body.created_by)
    return {
        **result.model_dump(),
        "message": f"Imported {result.imported_count} entries successfully",
    }


@app.post("/api/v1/answer-library/import-file")
async def import_library_file(
    organization_id: str = Query(...),
    created_by: str = Query(...),
    file: UploadFile = File(...)
):
    """Import an uploaded CSV file into the answer library."""
    if not file.filename.endswith('.csv'):
        raise HTTPException(status_code=400, detail="Only CSV files are supported")

    try:
        raw_text = (await file.read()).decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise HTTPException(status_code=400, detail=f"Error reading file: {str(e)}")

    result = await answer_library.import_from_delimited_text(organization_id, raw_text, created_by)
    return result.model_dump()


@app.get("/api/v1/answer-library/{entry_id}")
async def get_entry(entry_id: str, organization_id: str = Query(...)):
    entry = await answer_library.get_entry_by_id(entry_id)
    if entry is None or entry.organization_id != organization_id:
        raise NotFoundError("Answer library entry", entry_id)
    return entry.model_dump(mode="json")


@app.patch("/api/v1/answer-library/{entry_id}")
async def update_entry(entry_id: str, body: AnswerLibraryEntryUpdate, organization_id: str = Query(...)):
    entry = await answer_library.update_entry(entry_id, body, organization_id)
    return entry.model_dump(mode="json")


@app.delete("/api/v1/answer-library/{entry_id}", status_code=204)
async def delete_entry(entry_id: str, organization_id: str = Query(...)):
    await answer_library.delete_entry(entry_id, organization_id)


@app.post("/api/v1/answer-library/{entry_id}/use")
async def use_entry(entry_id: str, organization_id: str = Query(...)):
    entry = await answer_library.increment_usage(entry_id, organization_id)
    return entry.model_dump(mode="json")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT)
