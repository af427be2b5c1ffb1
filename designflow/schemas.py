from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Discriminator, EmailStr, Field, Tag, field_validator
from pydantic.alias_generators import to_camel

from designflow.db.models import OptimizationStatus, ProjectStatus, SkillLevel


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ------- Canvas document -------

class CanvasElement(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str
    version: Optional[str] = None
    originX: Optional[str] = None
    originY: Optional[str] = None
    left: Optional[float] = None
    top: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    fill: Optional[Union[str, Dict[str, Any]]] = None
    stroke: Optional[str] = None
    strokeWidth: Optional[float] = None
    scaleX: Optional[float] = None
    scaleY: Optional[float] = None
    angle: Optional[float] = None
    opacity: Optional[float] = None
    visible: Optional[bool] = None


class RectElement(CanvasElement):
    type: Literal["rect"]
    rx: Optional[float] = None
    ry: Optional[float] = None


class TextElement(CanvasElement):
    type: Literal["text", "textbox", "i-text"]
    text: Optional[str] = None
    fontSize: Optional[float] = None
    fontFamily: Optional[str] = None
    fontWeight: Optional[Union[str, int]] = None


class ImageElement(CanvasElement):
    type: Literal["image"]
    src: Optional[str] = None


class ShapeElement(CanvasElement):
    """Any other Fabric object kind (circle, line, group, path, ...)."""

    radius: Optional[float] = None


_ELEMENT_KINDS = {"rect": "rect", "text": "text", "textbox": "text", "i-text": "text", "image": "image"}


def _element_kind(value: Any) -> Optional[str]:
    kind = value.get("type") if isinstance(value, dict) else getattr(value, "type", None)
    if not isinstance(kind, str):
        return None
    return _ELEMENT_KINDS.get(kind, "shape")


# known kinds never fall through to ShapeElement
CanvasObject = Annotated[
    Union[
        Annotated[RectElement, Tag("rect")],
        Annotated[TextElement, Tag("text")],
        Annotated[ImageElement, Tag("image")],
        Annotated[ShapeElement, Tag("shape")],
    ],
    Discriminator(_element_kind),
]


class CanvasDocument(BaseModel):
    model_config = ConfigDict(extra="allow")

    version: str
    objects: List[CanvasObject] = Field(default_factory=list)
    background: Optional[str] = None

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


def canvas_to_json(value: Optional[Union[CanvasDocument, Dict[str, Any]]]) -> Optional[Dict[str, Any]]:
    """Validate a canvas document and return its stored (JSON) form."""
    if value is None:
        return None
    if not isinstance(value, CanvasDocument):
        value = CanvasDocument.model_validate(value)
    return value.to_json()


# ------- Auth -------

class SignupRequest(ApiModel):
    email: EmailStr
    password: str = Field(min_length=6)
    name: Optional[str] = None
    skill_level: SkillLevel = SkillLevel.BEGINNER


class CheckEmailRequest(ApiModel):
    email: Optional[str] = None


class LoginRequest(ApiModel):
    email: str
    password: str


class UserOut(ApiModel):
    id: str
    email: str
    name: Optional[str] = None
    skill_level: SkillLevel
    created_at: datetime


# ------- Projects & pages -------

class ProjectCreate(ApiModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)


class ProjectUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    status: Optional[ProjectStatus] = None


class OptimizationSummary(ApiModel):
    id: str
    status: OptimizationStatus
    quality_score: Optional[int] = None
    created_at: datetime


class PageBrief(ApiModel):
    id: str
    name: str
    order: int


class PageOut(ApiModel):
    id: str
    project_id: str
    name: str
    order: int
    canvas_data: Optional[Dict[str, Any]] = None
    source_image_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class PageWithLatest(PageOut):
    latest_optimization: Optional[OptimizationSummary] = None


class ProjectOut(ApiModel):
    id: str
    user_id: str
    name: str
    description: Optional[str] = None
    status: ProjectStatus
    created_at: datetime
    updated_at: datetime


class ProjectListItem(ProjectOut):
    pages: List[PageBrief] = Field(default_factory=list)
    page_count: int = 0


class ProjectDetail(ProjectOut):
    pages: List[PageWithLatest] = Field(default_factory=list)


class PageCreate(ApiModel):
    project_id: str
    name: str = Field(min_length=1, max_length=100)
    order: Optional[int] = Field(default=None, ge=0)
    canvas_data: Optional[CanvasDocument] = None


class PageUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    order: Optional[int] = Field(default=None, ge=0)
    canvas_data: Optional[CanvasDocument] = None


# ------- Optimizations -------

class RefinementOut(ApiModel):
    id: str
    optimization_id: str
    category: str
    feedback: Optional[str] = None
    changes: Optional[List[Any]] = None
    explanation: Optional[str] = None
    created_at: datetime


class OptimizationOut(ApiModel):
    id: str
    page_id: str
    status: OptimizationStatus
    original_design: Dict[str, Any]
    optimized_design: Optional[Dict[str, Any]] = None
    suggestions: Optional[List[Any]] = None
    user_feedback: Optional[Dict[str, Any]] = None
    ai_analysis: Optional[str] = None
    quality_score: Optional[int] = Field(default=None, ge=0, le=100)
    generated_code: Optional[Dict[str, Any]] = None
    created_at: datetime


class OptimizationWithRefinements(OptimizationOut):
    refinements: List[RefinementOut] = Field(default_factory=list)


class AnalyzeRequest(ApiModel):
    page_id: str


class FeedbackRequest(ApiModel):
    optimization_id: str
    feedback: str = Field(min_length=10, max_length=1000)
    category: str = Field(min_length=1, max_length=50)


class RefineRequest(ApiModel):
    page_id: str
    feedback: str = Field(min_length=1, max_length=1000)
    category: str = Field(default="general", min_length=1, max_length=50)


class CodeOptions(ApiModel):
    framework: Literal["nextjs", "react", "vue", "vite", "remix"] = "nextjs"
    styling: Literal["tailwind", "css-modules", "styled-components"] = "tailwind"
    include_tests: bool = False


class GenerateCodeRequest(ApiModel):
    optimization_id: str
    options: CodeOptions = Field(default_factory=CodeOptions)


class PageActionRequest(ApiModel):
    page_id: str


# ------- Extraction -------

class ExtractRequest(ApiModel):
    image: str = Field(min_length=1)
    media_type: str = "image/png"
    project_id: Optional[str] = None
    page_name: str = Field(default="New Page", min_length=1, max_length=100)

    @field_validator("image")
    @classmethod
    def _strip_data_url(cls, v: str) -> str:
        return v.split("base64,", 1)[1] if "base64," in v else v


# ------- Comments -------

class CommentCreate(ApiModel):
    project_id: str
    page_id: Optional[str] = None
    parent_id: Optional[str] = None
    content: str = Field(min_length=1)
    position_x: Optional[float] = None
    position_y: Optional[float] = None


class CommentUpdate(ApiModel):
    is_resolved: Optional[bool] = None
    content: Optional[str] = Field(default=None, min_length=1)


class CommentAuthor(ApiModel):
    id: str
    name: Optional[str] = None


class CommentOut(ApiModel):
    id: str
    project_id: str
    page_id: Optional[str] = None
    parent_id: Optional[str] = None
    user_id: str
    user: Optional[CommentAuthor] = None
    content: str
    position_x: Optional[float] = None
    position_y: Optional[float] = None
    is_resolved: bool
    created_at: datetime


class CommentThread(CommentOut):
    replies: List[CommentOut] = Field(default_factory=list)


# ------- Chat -------

class ChatRequest(ApiModel):
    message: str = Field(min_length=1, max_length=2000)
    project_id: Optional[str] = None
    page_id: Optional[str] = None
