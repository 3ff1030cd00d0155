from django.db import models
from django.contrib.auth.models import User

from materials.models import Material


class QuestionType(models.TextChoices):
    MULTIPLE_CHOICE = "multiple-choice", "Multiple choice"
    TRUE_FALSE = "true-false", "True / false"
    FILL_BLANK = "fill-blank", "Fill in the blank"
    SHORT_ANSWER = "short-answer", "Short answer"


class Difficulty(models.TextChoices):
    EASY = "easy", "Easy"
    MEDIUM = "medium", "Medium"
    HARD = "hard", "Hard"
    MIXED = "mixed", "Mixed"


# A quiz may ask for a mix of types; each stored question has exactly one
MIXED_QUESTION_TYPE = "mixed"
QUIZ_QUESTION_TYPE_CHOICES = QuestionType.choices + [(MIXED_QUESTION_TYPE, "Mixed")]


class Quiz(models.Model):
    title = models.CharField(max_length=300)
    description = models.TextField(blank=True, default="")
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="quizzes")
    material = models.ForeignKey(Material, on_delete=models.CASCADE, related_name="quizzes")
    difficulty = models.CharField(max_length=16, choices=Difficulty.choices, default=Difficulty.MEDIUM)
    total_questions = models.PositiveIntegerField(default=0)
    question_type = models.CharField(max_length=32, choices=QUIZ_QUESTION_TYPE_CHOICES,
                                     default=QuestionType.MULTIPLE_CHOICE)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        verbose_name_plural = "quizzes"

    def __str__(self):
        return self.title


class Question(models.Model):
    quiz = models.ForeignKey(Quiz, on_delete=models.CASCADE, related_name="questions")
    question_number = models.IntegerField(default=0)
    question_text = models.TextField()
    question_type = models.CharField(max_length=32, choices=QuestionType.choices)
    options = models.JSONField(null=True, blank=True)
    correct_answer = models.TextField()
    explanation = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["question_number", "id"]

    def __str__(self):
        return f"Q{self.question_number}: {self.question_text[:50]}"


class QuizAttempt(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="quiz_attempts")
    quiz = models.ForeignKey(Quiz, on_delete=models.CASCADE, related_name="attempts")
    score = models.PositiveIntegerField(null=True, blank=True)
    total_time = models.PositiveIntegerField(null=True, blank=True)
    completed = models.BooleanField(default=False)
    started_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-started_at", "-id"]

    def __str__(self):
        state = f"{self.score}%" if self.completed else "in progress"
        return f"Attempt {self.pk} on {self.quiz} ({state})"


class UserAnswer(models.Model):
    attempt = models.ForeignKey(QuizAttempt, on_delete=models.CASCADE, related_name="answers")
    question = models.ForeignKey(Question, on_delete=models.CASCADE, related_name="user_answers")
    user_answer = models.TextField(null=True, blank=True)
    is_correct = models.BooleanField(default=False)

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(fields=['attempt', 'question'], name='unique_answer_per_attempt_question')
        ]
