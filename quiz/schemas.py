from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SubmittedAnswer(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    question_id: Optional[int] = Field(default=None, alias="questionId")
    answer: Optional[str] = None

    @field_validator("answer", mode="before")
    @classmethod
    def answer_to_text(cls, value):
        if isinstance(value, bool):
            return "True" if value else "False"
        if isinstance(value, (int, float)):
            return str(value)
        return value


class AttemptSubmission(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    answers: List[SubmittedAnswer]
    total_time: Optional[int] = Field(default=None, alias="totalTime", ge=0)
