from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, Literal

DeviceType = Literal["mobile", "tablet", "desktop"]
UserType = Literal["client", "admin"]

MAX_ELEMENT_TEXT = 100


def get_device_type(width: int) -> DeviceType:
    """Derive the device class from the viewport width a comment was made at"""
    if width < 768:
        return "mobile"
    if width < 1024:
        return "tablet"
    return "desktop"


class CamelModel(BaseModel):
    """Wire models use camelCase field names, Python code uses snake_case"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class Author(CamelModel):
    name: str = "Anonymous"
    type: UserType = "client"


class ElementClickData(CamelModel):
    """What the embedded runtime captured for one click in comment mode"""

    selector: str
    element_text: str = ""
    click_x: int = Field(ge=0, le=100)
    click_y: int = Field(ge=0, le=100)
    viewport_width: int = Field(ge=0)
    viewport_height: int = Field(ge=0)


class CreateCommentRequest(CamelModel):
    project_id: str
    version_id: str
    text: str
    element_selector: str
    element_text: str = ""
    click_x: int = Field(ge=0, le=100)
    click_y: int = Field(ge=0, le=100)
    viewport_width: int = Field(ge=0)
    viewport_height: int = Field(ge=0)

    @classmethod
    def from_click(
        cls, project_id: str, version_id: str, click: ElementClickData, text: str
    ) -> "CreateCommentRequest":
        return cls(
            project_id=project_id,
            version_id=version_id,
            text=text,
            element_selector=click.selector,
            element_text=click.element_text,
            click_x=click.click_x,
            click_y=click.click_y,
            viewport_width=click.viewport_width,
            viewport_height=click.viewport_height,
        )


class Comment(CamelModel):
    id: str
    project_id: str
    version_id: str
    created_at: str
    author_name: str
    author_type: UserType
    text: str
    element_selector: str
    element_text: str = Field(default="", max_length=MAX_ELEMENT_TEXT)
    click_x: int
    click_y: int
    viewport_width: int
    viewport_height: int
    device_type: DeviceType


class CommentListResponse(CamelModel):
    comments: list[Comment] = Field(default_factory=list)


class CreateCommentResponse(CamelModel):
    success: bool
    comment: Comment


class HostState(CamelModel):
    """Snapshot of the host controller's UI state, sent to the review shell"""

    phase: Literal["idle", "awaiting_author_input", "submitting"]
    comment_mode: bool
    panel_open: bool
    child_ready: bool
    comments: list[Comment]
    highlighted_id: Optional[str] = None
    pending_click: Optional[ElementClickData] = None
    draft: str = ""
    error: Optional[str] = None
    notice: Optional[str] = None
