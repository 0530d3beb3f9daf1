from enum import Enum
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class FailureKind(str, Enum):
    SERVICE_UNAVAILABLE = "ServiceUnavailable"
    INVALID_INPUT = "InvalidInput"
    TOO_LARGE = "TooLarge"
    UPSTREAM_AUTH_ERROR = "UpstreamAuthError"
    UPSTREAM_QUOTA_EXCEEDED = "UpstreamQuotaExceeded"
    UPSTREAM_UNKNOWN_ERROR = "UpstreamUnknownError"


class DiagnosisRequest(BaseModel):
    image: str = Field(default="", description="data:image/<jpeg|jpg|png|webp>;base64,<payload>")
    crop: Optional[str] = Field(default=None, description="crop identifier from the catalog")


class DecodedImage(BaseModel):
    model_config = ConfigDict(frozen=True)

    mime_type: Literal["image/jpeg", "image/png", "image/webp"]
    data: bytes = Field(repr=False)
    size_bytes: int

    @property
    def size_mb(self) -> float:
        return self.size_bytes / (1024 * 1024)


class ToolContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolResult(BaseModel):
    content: List[ToolContent]
    isError: Optional[bool] = None


class DiagnosisSuccess(BaseModel):
    ok: Literal[True] = True
    report_text: str

    def to_tool_result(self) -> ToolResult:
        return ToolResult(content=[ToolContent(text=self.report_text)])


class DiagnosisFailure(BaseModel):
    ok: Literal[False] = False
    kind: FailureKind
    user_message: str

    def to_tool_result(self) -> ToolResult:
        return ToolResult(content=[ToolContent(text=self.user_message)], isError=True)


DiagnosisOutcome = Union[DiagnosisSuccess, DiagnosisFailure]


class CropListResponse(BaseModel):
    crops: List[str]
    total: int
    source: str
    loaded: bool
