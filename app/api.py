"""
FastAPI routes for the operator's review screen.
Thin layer over the review service: selectors, upload, search and report.
"""
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import BackgroundTasks, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import FileResponse, HTMLResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from client.processing_client import ProcessingServiceClient
from core.config import get_settings
from core.logger import setup_logger
from core.schema import Area, PaymentMode
from services.review_service import ReviewService

logger = setup_logger(__name__)
settings = get_settings()

ALLOWED_EXTENSIONS = (".txt", ".csv")


@asynccontextmanager
async def lifespan(_: FastAPI):
    yield
    # Pending search timers must not outlive the app
    review_service.close()


# Initialize FastAPI app
app = FastAPI(
    title="Splitter",
    description="Upload transaction files, review processed lines and export reports",
    version="1.0.0",
    lifespan=lifespan
)

# Setup templates
templates_dir = Path(__file__).parent.parent / "templates"
templates = Jinja2Templates(directory=str(templates_dir))

# Single operator session (state is not persisted)
review_service = ReviewService(ProcessingServiceClient(), settings)


def wants_html(request: Request) -> bool:
    """Browser form posts get redirected back to the page."""
    return "text/html" in request.headers.get("accept", "")


@app.get("/", response_class=HTMLResponse)
async def index(request: Request):
    """Render the review screen."""
    return templates.TemplateResponse(
        request,
        "index.html",
        {"state": review_service.snapshot(), "app_name": settings.app_name}
    )


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "splitter",
        "version": "1.0.0"
    }


@app.get("/favicon.ico")
async def favicon():
    """Return empty response for favicon to avoid 404 errors."""
    return Response(status_code=204)


@app.get("/options")
async def options():
    """Selector values."""
    return {
        "payment_modes": [m.value for m in PaymentMode],
        "areas": [a.value for a in Area],
    }


@app.post("/selection")
async def update_selection(
    request: Request,
    payment_mode: str = Form(""),
    area: str = Form("")
):
    """Store the selector values used for the next upload."""
    review_service.select_payment_mode(payment_mode)
    review_service.select_area(area)
    if wants_html(request):
        return RedirectResponse("/", status_code=303)
    return {"payment_mode": review_service.payment_mode, "area": review_service.area}


def validate_file_extension(filename: str) -> None:
    """
    Validate file has a supported extension.
    
    Args:
        filename: Name of file to validate
    
    Raises:
        HTTPException: If file extension is invalid
    """
    if not filename or not filename.lower().endswith(ALLOWED_EXTENSIONS):
        raise HTTPException(
            status_code=400,
            detail=f"Invalid file type: {filename}. Only .txt and .csv are supported."
        )


@app.post("/upload", status_code=202)
async def upload_file(
    request: Request,
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    payment_mode: Optional[str] = Form(None),
    area: Optional[str] = Form(None)
):
    """
    Accept a file and follow its processing in the background.
    Returns immediately; the screen polls /state.
    """
    logger.info(f"Received file: {file.filename}")
    validate_file_extension(file.filename)
    
    if payment_mode is not None:
        review_service.select_payment_mode(payment_mode)
    if area is not None:
        review_service.select_area(area)
    
    content = await file.read()
    review_service.mark_upload_pending()
    background_tasks.add_task(review_service.upload, file.filename, content)
    
    if wants_html(request):
        return RedirectResponse("/", status_code=303)
    return {"status": "accepted", "filename": file.filename}


@app.get("/state")
async def get_state():
    """Current review screen state."""
    return review_service.snapshot()


@app.post("/search")
async def update_search(request: Request, query: str = Form("")):
    """Record a search edit; results follow after the debounce delay."""
    if query:
        review_service.update_search(query)
    else:
        review_service.clear_search()
    if wants_html(request):
        return RedirectResponse("/", status_code=303)
    return {"query": review_service.search.query_raw, "is_searching": review_service.search.is_searching}


@app.delete("/search")
async def clear_search():
    """Clear the search immediately."""
    review_service.clear_search()
    return {"query": "", "is_searching": False}


@app.post("/search/clear")
async def clear_search_form(request: Request):
    """Clear the search from the page's clear button."""
    review_service.clear_search()
    if wants_html(request):
        return RedirectResponse("/", status_code=303)
    return {"query": "", "is_searching": False}


@app.post("/report")
async def generate_report(request: Request):
    """
    Generate the report for the completed session and send it as a download.
    Browser posts return to the page, where the error is shown, on failure.
    """
    path = await review_service.generate_report()
    if path is None:
        if wants_html(request):
            return RedirectResponse("/", status_code=303)
        raise HTTPException(status_code=400, detail=review_service.error)
    
    return FileResponse(
        path=str(path),
        filename=path.name,
        media_type="application/zip"
    )

