import json
import logging
import re
from typing import List, Optional

from django.conf import settings
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from langchain_openai import ChatOpenAI
from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import PromptTemplate

from quiz.models import QuestionType, MIXED_QUESTION_TYPE
from study_aid.exceptions import GenerationFailure, OracleGradingFailure


logger = logging.getLogger("study_aid")


class GeneratedQuestion(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    question_text: str = Field(alias="questionText", min_length=1)
    question_type: Optional[str] = Field(default=None, alias="questionType")
    options: Optional[List[str]] = None
    correct_answer: str = Field(alias="correctAnswer", min_length=1)
    explanation: str = ""

    @field_validator("correct_answer", mode="before")
    @classmethod
    def correct_answer_to_text(cls, value):
        # true-false answers often come back as JSON booleans
        if isinstance(value, bool):
            return "True" if value else "False"
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("options", mode="before")
    @classmethod
    def options_to_text(cls, value):
        if isinstance(value, list):
            return [str(option) for option in value]
        return value

    @field_validator("explanation", mode="before")
    @classmethod
    def explanation_none_to_empty(cls, value):
        return value or ""


example_response_json = """[
  {{
    "questionText": "What is the capital of France?",
    "questionType": "multiple-choice",
    "options": ["London", "Paris", "Berlin", "Madrid"],
    "correctAnswer": "Paris",
    "explanation": "Paris has been the capital of France since the 10th century."
  }}
]"""


quiz_prompt = """
    You are an expert educational quiz creator. Create {number_of_questions} quiz questions based on the provided
    study material. The questions should be of type "{question_type}" and difficulty level "{difficulty}".

    For multiple-choice questions, include 4 options with 1 correct answer.
    For true-false questions, the correct answer is either "True" or "False".
    For fill-in-the-blank questions, provide the exact word or phrase for the blank.
    For short-answer questions, provide the expected answer.
    If the type is "mixed", use a mix of multiple-choice, true-false, fill-blank and short-answer questions.

    Generate {number_of_questions} {question_type} questions ({difficulty} difficulty) for study material
    titled: "{title}". Here's the content:

    {file_content}

    Return the response as a JSON array of question objects like the RESPONSE JSON below. The "questionType"
    of each object must be one of multiple-choice, true-false, fill-blank or short-answer, and "options" is
    only given for multiple-choice questions.
    RESPONSE JSON = """ + example_response_json + """

    Your response should be valid JSON only, no other text.
"""


short_answer_prompt = """
    You are an expert educational assessor. Evaluate if the student's answer is correct based on the expected answer.

    Question: {question_text}
    Expected Answer: {expected_answer}
    Student's Answer: {student_answer}

    Is the student's answer correct? Reply with just "correct" or "incorrect".
"""


def extract_json_array(text: str) -> list:
    """
    Return the first well-formed JSON array found in ``text``.

    Models like to wrap JSON in prose or markdown fences, so every ``[`` is
    tried as a starting point until one decodes to a list.
    """
    if not text:
        raise GenerationFailure("Empty response from llm integration")

    decoder = json.JSONDecoder()

    for match in re.finditer(r"\[", text):
        try:
            value, _ = decoder.raw_decode(text, match.start())
        except json.JSONDecodeError:
            continue

        if isinstance(value, list):
            return value

    raise GenerationFailure("Failed to generate valid JSON response")


def resolve_question_type(generated_type: Optional[str], requested_type: str) -> Optional[str]:
    if generated_type in QuestionType.values:
        return generated_type

    if requested_type != MIXED_QUESTION_TYPE:
        return requested_type

    return None


def parse_generated_questions(items: list, requested_type: str) -> List[GeneratedQuestion]:
    questions = []

    for index, item in enumerate(items):
        try:
            question = GeneratedQuestion.model_validate(item)
        except ValidationError as e:
            logger.warning(f"Skipping malformed generated question {index}: {e.error_count()} error(s)")
            continue

        question_type = resolve_question_type(question.question_type, requested_type)

        if question_type is None:
            logger.warning(f"Skipping generated question {index} with unknown type {question.question_type!r}")
            continue

        question.question_type = question_type

        if question_type == QuestionType.TRUE_FALSE:
            question.options = question.options or ["True", "False"]
        elif question_type != QuestionType.MULTIPLE_CHOICE:
            question.options = None

        questions.append(question)

    return questions


def generate_quiz_questions(text: str, title: str, question_type: str, difficulty: str,
                            count: int) -> List[GeneratedQuestion]:
    prompt = PromptTemplate(
        template=quiz_prompt,
        input_variables=["number_of_questions", "question_type", "difficulty", "title", "file_content"],
    )

    try:
        model = ChatOpenAI(model=settings.OPENAI_MODEL, api_key=settings.OPENAI_API_KEY, temperature=0.2)
        chain = prompt | model | StrOutputParser()
        output = chain.invoke({"number_of_questions": count, "question_type": question_type,
                               "difficulty": difficulty, "title": title, "file_content": text})
    except Exception as e:
        logger.error(e)
        raise GenerationFailure("Failed to generate quiz questions")

    logger.debug(output)

    items = extract_json_array(output)
    questions = parse_generated_questions(items, requested_type=question_type)

    if not questions:
        raise GenerationFailure("The generated quiz did not contain any usable questions")

    return questions


def grade_short_answer(question_text: str, expected_answer: str, student_answer: str) -> bool:
    prompt = PromptTemplate(
        template=short_answer_prompt,
        input_variables=["question_text", "expected_answer", "student_answer"],
    )

    try:
        model = ChatOpenAI(model=settings.OPENAI_MODEL, api_key=settings.OPENAI_API_KEY, temperature=0.1,
                           max_tokens=10)
        chain = prompt | model | StrOutputParser()
        output = chain.invoke({"question_text": question_text, "expected_answer": expected_answer,
                               "student_answer": student_answer})
    except Exception as e:
        logger.error(e)
        raise OracleGradingFailure()

    verdict = output.strip().lower()
    return "correct" in verdict and "incorrect" not in verdict
