from django.urls import path

from quiz import views

urlpatterns = [
    path("materials/<int:material_id>/quizzes", views.material_quizzes, name="material_quizzes"),
    path("quizzes/<int:pk>", views.quiz_detail, name="quiz_detail"),
    path("quizzes/<int:pk>/questions", views.quiz_questions, name="quiz_questions"),
    path("quizzes/<int:pk>/attempts", views.create_attempt, name="create_attempt"),
    path("attempts/<int:pk>", views.attempt_detail, name="attempt_detail"),
    path("attempts/<int:pk>/submit", views.submit_quiz_attempt, name="submit_attempt"),
    path("attempts/<int:pk>/results", views.attempt_results, name="attempt_results"),
    path("users/<int:user_id>/quizzes", views.user_quizzes, name="user_quizzes"),
    path("users/<int:user_id>/attempts", views.user_attempts, name="user_attempts"),
]
