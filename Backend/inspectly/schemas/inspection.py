import base64
import binascii
from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class InspectionStatus(str, Enum):
    INCOMPLETE = "incomplete"
    COMPLETE = "complete"


# ---------------------------------------------------------
# RESPONSES: tagged by the same names as QuestionType
# ---------------------------------------------------------
class TextResponse(BaseModel):
    type: Literal["text"] = "text"
    value: str


class MultipleChoiceResponse(BaseModel):
    type: Literal["multipleChoice"] = "multipleChoice"
    value: str


class CheckboxResponse(BaseModel):
    type: Literal["checkbox"] = "checkbox"
    value: List[str] = Field(default_factory=list)


class PhotoResponse(BaseModel):
    """Raw image bytes; travels as base64 (optionally a data URL) in JSON."""
    type: Literal["photo"] = "photo"
    value: bytes

    @field_validator("value", mode="before")
    @classmethod
    def decode_base64(cls, v):
        if isinstance(v, str):
            encoded = v.split(",", 1)[1] if v.startswith("data:") and "," in v else v
            try:
                return base64.b64decode(encoded.strip(), validate=True)
            except (binascii.Error, ValueError):
                raise ValueError("photo value must be base64-encoded")
        return v

    @field_serializer("value", when_used="json")
    def encode_base64(self, v: bytes) -> str:
        return base64.b64encode(v).decode("ascii")


class SignatureResponse(BaseModel):
    """Signature image as an encoded string, normally ``data:image/png;base64,...``."""
    type: Literal["signature"] = "signature"
    value: str


Response = Annotated[
    Union[TextResponse, MultipleChoiceResponse, CheckboxResponse, PhotoResponse, SignatureResponse],
    Field(discriminator="type"),
]


class InspectionCreate(BaseModel):
    template_id: str
    organization_id: str
    inspector_name: str = Field(..., min_length=1)
    location: str = ""
    status: InspectionStatus = InspectionStatus.INCOMPLETE
    date: datetime = Field(default_factory=datetime.now)
    responses: Dict[str, Response] = Field(default_factory=dict)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "template_id": "0b1a6c4e-0a43-4d3e-9a51-0e3c1c9e2a10",
                "organization_id": "7f0c1e9e-4d55-4b8e-9d0e-2f7f6a1f0c11",
                "inspector_name": "Jane Doe",
                "location": "Warehouse 4",
                "status": "complete",
                "responses": {
                    "q1": {"type": "text", "value": "All clear"},
                    "q2": {"type": "checkbox", "value": ["Helmet"]},
                },
            }
        }
    )


class InspectionUpdate(BaseModel):
    inspector_name: Optional[str] = Field(None, min_length=1)
    location: Optional[str] = None
    status: Optional[InspectionStatus] = None
    date: Optional[datetime] = None
    responses: Optional[Dict[str, Response]] = None


class Inspection(BaseModel):
    id: str
    template_id: str
    organization_id: str
    inspector_name: str
    location: str = ""
    status: InspectionStatus = InspectionStatus.INCOMPLETE
    date: datetime
    responses: Dict[str, Response] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
