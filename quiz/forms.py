from django import forms
from django.conf import settings

from quiz.models import Difficulty, QuestionType, QUIZ_QUESTION_TYPE_CHOICES


class QuizForm(forms.Form):
    title = forms.CharField(label="Quiz Name", max_length=300, required=False)
    description = forms.CharField(label="Description", required=False)
    difficulty = forms.ChoiceField(choices=Difficulty.choices, required=False)
    total_questions = forms.IntegerField(label="Number of Questions", min_value=1,
                                         max_value=settings.MAX_QUIZ_QUESTIONS, required=False)
    question_type = forms.ChoiceField(choices=QUIZ_QUESTION_TYPE_CHOICES, required=False)

    @classmethod
    def from_json(cls, body: dict):
        return cls(data={
            "title": body.get("title"),
            "description": body.get("description"),
            "difficulty": body.get("difficulty"),
            "total_questions": body.get("totalQuestions"),
            "question_type": body.get("questionType"),
        })

    def clean_difficulty(self):
        return self.cleaned_data.get("difficulty") or Difficulty.MEDIUM

    def clean_total_questions(self):
        return self.cleaned_data.get("total_questions") or settings.DEFAULT_QUIZ_QUESTIONS

    def clean_question_type(self):
        return self.cleaned_data.get("question_type") or QuestionType.MULTIPLE_CHOICE
