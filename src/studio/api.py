"""HTTP surface for the school stream and the whiteboard store."""
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from studio.config import Settings, load_settings
from studio.errors import NotFoundError, ValidationError
from studio.school import add_announcement, add_assignment, add_question, add_resource, read_school
from studio.whiteboards import create_whiteboard, get_whiteboard, list_whiteboards, save_whiteboard

logger = logging.getLogger(__name__)


class _Body(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class WhiteboardBody(_Body):
    id: Any = None
    title: Any = None
    author: Any = None
    paths: Any = None
    page_drawings: Any = Field(default=None, alias="pageDrawings")
    page_order: Any = Field(default=None, alias="pageOrder")
    page_labels: Any = Field(default=None, alias="pageLabels")
    active_page_key: Any = Field(default=None, alias="activePageKey")
    preview_image: Any = Field(default=None, alias="previewImage")

    def fields(self) -> dict:
        return {
            "title": self.title,
            "author": self.author,
            "paths": self.paths if isinstance(self.paths, list) else None,
            "page_drawings": self.page_drawings if isinstance(self.page_drawings, dict) else None,
            "page_order": self.page_order if isinstance(self.page_order, list) else None,
            "page_labels": self.page_labels if isinstance(self.page_labels, dict) else None,
            "active_page_key": self.active_page_key,
            "preview_image": self.preview_image if isinstance(self.preview_image, str) else None,
        }


class AnnouncementBody(_Body):
    title: Any = None
    message: Any = None
    author: Any = None


class AssignmentBody(_Body):
    title: Any = None
    description: Any = None
    due_date: Any = Field(default=None, alias="dueDate")
    points: Any = None
    author: Any = None


class ResourceBody(_Body):
    title: Any = None
    description: Any = None
    url: Any = None
    type: Any = None


class QuestionBody(_Body):
    author: Any = None
    message: Any = None


def get_db_path(request: Request) -> str:
    return request.app.state.settings.db_path


router = APIRouter(prefix="/api/school", tags=["school"])


@router.get("")
def school_overview(db_path: str = Depends(get_db_path)):
    return {"school": read_school(db_path)}


@router.get("/whiteboards")
def whiteboards_get(id: Optional[str] = Query(default=None), db_path: str = Depends(get_db_path)):
    board_id = (id or "").strip()
    if board_id:
        return {"whiteboard": get_whiteboard(db_path, board_id).to_dict()}
    return {"whiteboards": list_whiteboards(db_path)}


@router.post("/whiteboards", status_code=status.HTTP_201_CREATED)
def whiteboards_create(body: WhiteboardBody, db_path: str = Depends(get_db_path)):
    created = create_whiteboard(db_path, **body.fields())
    return {"whiteboard": created["whiteboard"].to_dict(), "summary": created["summary"]}


@router.put("/whiteboards")
def whiteboards_save(body: WhiteboardBody, db_path: str = Depends(get_db_path)):
    saved = save_whiteboard(db_path, body.id, **body.fields())
    return {"whiteboard": saved["whiteboard"].to_dict(), "summary": saved["summary"]}


@router.post("/announcements", status_code=status.HTTP_201_CREATED)
def announcements_create(body: AnnouncementBody, db_path: str = Depends(get_db_path)):
    return {"announcement": add_announcement(db_path, body.title, body.message, body.author)}


@router.post("/assignments", status_code=status.HTTP_201_CREATED)
def assignments_create(body: AssignmentBody, db_path: str = Depends(get_db_path)):
    assignment = add_assignment(
        db_path, body.title, description=body.description, due_date=body.due_date,
        points=body.points, author=body.author,
    )
    return {"assignment": assignment}


@router.post("/resources", status_code=status.HTTP_201_CREATED)
def resources_create(body: ResourceBody, db_path: str = Depends(get_db_path)):
    resource = add_resource(db_path, body.title, body.url, description=body.description, type=body.type)
    return {"resource": resource}


@router.post("/questions", status_code=status.HTTP_201_CREATED)
def questions_create(body: QuestionBody, db_path: str = Depends(get_db_path)):
    return {"question": add_question(db_path, body.message, author=body.author)}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(settings: Settings | None = None) -> FastAPI:
    app = FastAPI(title="Last Day Studio")
    app.state.settings = settings or load_settings()
    app.include_router(router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.exception_handler(ValidationError)
    async def on_validation_error(request: Request, exc: ValidationError):
        return _error(status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(NotFoundError)
    async def on_not_found(request: Request, exc: NotFoundError):
        return _error(status.HTTP_404_NOT_FOUND, str(exc))

    @app.exception_handler(RequestValidationError)
    async def on_bad_body(request: Request, exc: RequestValidationError):
        logger.debug("Rejected request body on %s: %s", request.url.path, exc.errors())
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid request body")

    @app.exception_handler(405)
    async def on_method_not_allowed(request: Request, exc):
        return _error(status.HTTP_405_METHOD_NOT_ALLOWED, "Method not allowed")

    return app


app = create_app()
