from enum import Enum
from typing import List, Optional
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class QuestionType(str, Enum):
    TEXT = "text"
    MULTIPLE_CHOICE = "multipleChoice"
    CHECKBOX = "checkbox"
    PHOTO = "photo"
    SIGNATURE = "signature"


class Question(BaseModel):
    id: str
    type: QuestionType
    question: str
    # only meaningful for multipleChoice / checkbox
    options: List[str] = Field(default_factory=list)
    required: bool = False


def ensure_unique_ids(questions: Optional[List[Question]]) -> Optional[List[Question]]:
    if questions is None:
        return questions
    seen = set()
    for q in questions:
        if q.id in seen:
            raise ValueError(f"Duplicate question id: {q.id}")
        seen.add(q.id)
    return questions


# ---------------------------------------------------------
# CREATE SCHEMA (draft; id and timestamps are assigned by the store)
# ---------------------------------------------------------
class TemplateCreate(BaseModel):
    name: str = Field(..., min_length=1)
    organization_id: str
    questions: List[Question] = Field(default_factory=list)

    @field_validator("questions")
    @classmethod
    def check_unique_ids(cls, v):
        return ensure_unique_ids(v)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Daily site walk",
                "organization_id": "7f0c1e9e-4d55-4b8e-9d0e-2f7f6a1f0c11",
                "questions": [
                    {"id": "q1", "type": "text", "question": "General condition?", "required": True},
                    {"id": "q2", "type": "checkbox", "question": "PPE present", "options": ["Helmet", "Gloves"]},
                ],
            }
        }
    )


# ---------------------------------------------------------
# UPDATE SCHEMA: organization ownership never changes
# ---------------------------------------------------------
class TemplateUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    questions: Optional[List[Question]] = None

    @field_validator("questions")
    @classmethod
    def check_unique_ids(cls, v):
        return ensure_unique_ids(v)


class Template(BaseModel):
    id: str
    name: str
    organization_id: str
    questions: List[Question] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    def question_ids(self) -> List[str]:
        return [q.id for q in self.questions]
