import json
from unittest import TestCase as unittestTestCase
from unittest.mock import patch

from django.test import TestCase, Client
from django.contrib.auth.models import User
from django.urls import reverse
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from materials.models import Material
from quiz.grading import GRADERS, grade_answer, compute_score
from quiz.helpers import match_answers
from quiz.llm_integration import (
    GeneratedQuestion,
    extract_json_array,
    generate_quiz_questions,
    grade_short_answer,
    parse_generated_questions,
)
from quiz.models import Quiz, Question, QuizAttempt, UserAnswer, QuestionType
from quiz.schemas import SubmittedAnswer
from study_aid.exceptions import GenerationFailure, OracleGradingFailure, UngradableQuestion


example_response_json = """[
  {"questionText": "What is the capital of France?",
   "questionType": "multiple-choice",
   "options": ["London", "Paris", "Berlin", "Madrid"],
   "correctAnswer": "Paris",
   "explanation": "Paris is the capital of France."},
  {"questionText": "The Seine flows through Paris.",
   "questionType": "true-false",
   "correctAnswer": true,
   "explanation": "It does."}
]"""


def make_generated_questions(count, question_type="multiple-choice"):
    return [
        GeneratedQuestion(
            question_text=f"Generated question {i}?",
            question_type=question_type,
            options=[f"answer_{i}", "wrong_1", "wrong_2", "wrong_3"] if question_type == "multiple-choice" else None,
            correct_answer=f"answer_{i}",
            explanation=f"Because of {i}",
        )
        for i in range(1, count + 1)
    ]


class QuizTestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.test_user = User.objects.create_user(username='testuser', password='password')

        cls.random_user = User.objects.create_user(username='randomuser', password='random')

        cls.material = Material.objects.create(user=cls.test_user, title='French geography', file_type='txt',
                                               content='Paris is the capital of France. The Seine flows through it.')

        cls.empty_material = Material.objects.create(user=cls.test_user, title='Blank scan', file_type='pdf',
                                                     content='')

        cls.test_quiz = Quiz.objects.create(title='test title', user=cls.test_user, material=cls.material,
                                            difficulty='easy', total_questions=4, question_type='mixed')

        cls.question_mc = Question.objects.create(
            quiz=cls.test_quiz, question_number=1, question_text='What is the capital of France?',
            question_type='multiple-choice', options=['London', 'Paris', 'Berlin', 'Madrid'],
            correct_answer='Paris', explanation='Paris is the capital.')
        cls.question_tf = Question.objects.create(
            quiz=cls.test_quiz, question_number=2, question_text='The Seine flows through Paris.',
            question_type='true-false', options=['True', 'False'], correct_answer='True',
            explanation='It does.')
        cls.question_fill = Question.objects.create(
            quiz=cls.test_quiz, question_number=3, question_text='The capital of France is ____.',
            question_type='fill-blank', correct_answer='Paris', explanation='Paris again.')
        cls.question_short = Question.objects.create(
            quiz=cls.test_quiz, question_number=4, question_text='Why is Paris important?',
            question_type='short-answer', correct_answer='It is the political and cultural centre of France.',
            explanation='Capital city.')

    def setUp(self):
        # Every test needs a client.
        self.authenticated_client = Client()
        self.authenticated_client.login(username='testuser', password='password')
        self.unauthenticated_client = Client()

        self.random_client = Client()
        self.random_client.login(username='randomuser', password='random')

    def post_json(self, client, url, data):
        return client.post(url, data=json.dumps(data), content_type='application/json')

    def start_attempt(self, quiz=None):
        quiz = quiz or QuizTestCase.test_quiz
        response = self.authenticated_client.post(reverse('create_attempt', args=[quiz.pk]))
        self.assertEqual(response.status_code, 201)
        return QuizAttempt.objects.get(pk=response.json()['id'])

    def all_correct_answers(self):
        return [
            {"questionId": QuizTestCase.question_mc.pk, "answer": "Paris"},
            {"questionId": QuizTestCase.question_tf.pk, "answer": "True"},
            {"questionId": QuizTestCase.question_fill.pk, "answer": " paris "},
            {"questionId": QuizTestCase.question_short.pk, "answer": "It is the centre of French politics."},
        ]

    # Quiz retrieval

    def test_authenticated_client_get_quiz_detail(self):
        response = self.authenticated_client.get(reverse('quiz_detail', args=[QuizTestCase.test_quiz.pk]))
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['id'], QuizTestCase.test_quiz.pk)
        self.assertEqual(data['materialId'], QuizTestCase.material.pk)
        self.assertEqual(data['totalQuestions'], 4)
        self.assertEqual(data['questionType'], 'mixed')

    def test_random_authenticated_client_get_quiz_detail_fail(self):
        response = self.random_client.get(reverse('quiz_detail', args=[QuizTestCase.test_quiz.pk]))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['error'], "Quiz not found")

    def test_unauthenticated_client_get_quiz_detail(self):
        response = self.unauthenticated_client.get(reverse('quiz_detail', args=[QuizTestCase.test_quiz.pk]))
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['error'], "Authentication required")

    def test_questions_endpoint_never_includes_answers(self):
        response = self.authenticated_client.get(reverse('quiz_questions', args=[QuizTestCase.test_quiz.pk]))
        self.assertEqual(response.status_code, 200)
        questions = response.json()
        self.assertEqual(len(questions), 4)
        self.assertEqual([q['id'] for q in questions],
                         [QuizTestCase.question_mc.pk, QuizTestCase.question_tf.pk,
                          QuizTestCase.question_fill.pk, QuizTestCase.question_short.pk])

        for question in questions:
            self.assertNotIn('correctAnswer', question)
            self.assertNotIn('explanation', question)

        self.assertEqual(questions[0]['options'], ['London', 'Paris', 'Berlin', 'Madrid'])

    def test_get_user_quizzes(self):
        response = self.authenticated_client.get(reverse('user_quizzes', args=[QuizTestCase.test_user.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual([q['id'] for q in response.json()], [QuizTestCase.test_quiz.pk])

    def test_get_other_user_quizzes_fail(self):
        response = self.random_client.get(reverse('user_quizzes', args=[QuizTestCase.test_user.pk]))
        self.assertEqual(response.status_code, 404)

    # Quiz creation

    @patch("quiz.helpers.generate_quiz_questions")
    def test_create_quiz_success(self, generate_questions):
        generate_questions.return_value = make_generated_questions(5)

        post_data = {"title": "Geography quiz", "difficulty": "hard", "totalQuestions": 5,
                     "questionType": "multiple-choice"}

        response = self.post_json(self.authenticated_client,
                                  reverse('material_quizzes', args=[QuizTestCase.material.pk]), post_data)

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data['title'], "Geography quiz")
        self.assertEqual(data['difficulty'], "hard")
        self.assertEqual(data['totalQuestions'], 5)

        new_quiz = Quiz.objects.get(pk=data['id'])
        questions = Question.objects.filter(quiz=new_quiz).order_by('question_number')
        self.assertEqual(questions.count(), 5)

        for index, question in enumerate(questions, start=1):
            self.assertEqual(question.question_number, index)
            self.assertEqual(question.question_text, f"Generated question {index}?")
            self.assertEqual(question.correct_answer, f"answer_{index}")
            self.assertEqual(question.question_type, "multiple-choice")

        generate_questions_kwargs = generate_questions.call_args[1]
        self.assertEqual(generate_questions_kwargs["text"], QuizTestCase.material.content)
        self.assertEqual(generate_questions_kwargs["title"], QuizTestCase.material.title)
        self.assertEqual(generate_questions_kwargs["question_type"], "multiple-choice")
        self.assertEqual(generate_questions_kwargs["difficulty"], "hard")
        self.assertEqual(generate_questions_kwargs["count"], 5)

    @patch("quiz.helpers.generate_quiz_questions")
    def test_create_quiz_defaults(self, generate_questions):
        generate_questions.return_value = make_generated_questions(10)

        response = self.post_json(self.authenticated_client,
                                  reverse('material_quizzes', args=[QuizTestCase.material.pk]), {})

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertEqual(data['title'], "Quiz: French geography")
        self.assertEqual(data['difficulty'], "medium")
        self.assertEqual(data['questionType'], "multiple-choice")
        self.assertEqual(data['totalQuestions'], 10)

    @patch("quiz.helpers.generate_quiz_questions")
    def test_create_quiz_truncates_extra_generated_questions(self, generate_questions):
        generate_questions.return_value = make_generated_questions(7)

        response = self.post_json(self.authenticated_client,
                                  reverse('material_quizzes', args=[QuizTestCase.material.pk]),
                                  {"totalQuestions": 5})

        self.assertEqual(response.status_code, 201)
        new_quiz = Quiz.objects.get(pk=response.json()['id'])
        self.assertEqual(new_quiz.total_questions, 5)
        self.assertEqual(Question.objects.filter(quiz=new_quiz).count(), 5)

    @patch("quiz.helpers.generate_quiz_questions")
    def test_create_quiz_accepts_fewer_generated_questions(self, generate_questions):
        generate_questions.return_value = make_generated_questions(3)

        response = self.post_json(self.authenticated_client,
                                  reverse('material_quizzes', args=[QuizTestCase.material.pk]),
                                  {"totalQuestions": 5})

        self.assertEqual(response.status_code, 201)
        new_quiz = Quiz.objects.get(pk=response.json()['id'])
        self.assertEqual(new_quiz.total_questions, 3)
        self.assertEqual(Question.objects.filter(quiz=new_quiz).count(), 3)

    @patch("quiz.helpers.generate_quiz_questions", side_effect=GenerationFailure())
    def test_create_quiz_generation_failure_leaves_no_quiz(self, generate_questions):
        quiz_count = Quiz.objects.count()

        response = self.post_json(self.authenticated_client,
                                  reverse('material_quizzes', args=[QuizTestCase.material.pk]),
                                  {"totalQuestions": 5})

        self.assertEqual(response.status_code, 502)
        self.assertEqual(response.json()['error'], "Error from llm integration")
        self.assertTrue(generate_questions.called)
        self.assertEqual(Quiz.objects.count(), quiz_count)

    @patch("quiz.helpers.generate_quiz_questions")
    def test_create_quiz_material_without_content(self, generate_questions):
        response = self.post_json(self.authenticated_client,
                                  reverse('material_quizzes', args=[QuizTestCase.empty_material.pk]), {})

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['error'], "Material has no extracted content")
        self.assertFalse(generate_questions.called)

    @patch("quiz.helpers.generate_quiz_questions")
    def test_create_quiz_material_not_found(self, generate_questions):
        response = self.post_json(self.authenticated_client, reverse('material_quizzes', args=[99999]), {})

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['error'], "Material not found")
        self.assertFalse(generate_questions.called)

    @patch("quiz.helpers.generate_quiz_questions")
    def test_create_quiz_other_users_material(self, generate_questions):
        response = self.post_json(self.random_client,
                                  reverse('material_quizzes', args=[QuizTestCase.material.pk]), {})

        self.assertEqual(response.status_code, 404)
        self.assertFalse(generate_questions.called)

    @patch("quiz.helpers.generate_quiz_questions")
    def test_create_quiz_form_not_valid(self, generate_questions):
        post_data = {"totalQuestions": 21, "questionType": "essay", "difficulty": "impossible"}

        response = self.post_json(self.authenticated_client,
                                  reverse('material_quizzes', args=[QuizTestCase.material.pk]), post_data)

        self.assertEqual(response.status_code, 400)
        data = response.json()
        self.assertEqual(data['error'], "Validation error")
        self.assertEqual(set(data['form_errors']), {"total_questions", "question_type", "difficulty"})

        for k, v in data['form_errors'].items():
            self.assertIsInstance(v, list)
            self.assertTrue(v)

        self.assertFalse(generate_questions.called)

    def test_create_quiz_invalid_json(self):
        response = self.authenticated_client.post(reverse('material_quizzes', args=[QuizTestCase.material.pk]),
                                                  data="{not json", content_type='application/json')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], "Invalid JSON")

    def test_get_material_quizzes(self):
        response = self.authenticated_client.get(reverse('material_quizzes', args=[QuizTestCase.material.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual([q['id'] for q in response.json()], [QuizTestCase.test_quiz.pk])

    def test_get_material_quizzes_other_users_material(self):
        other_material = Material.objects.create(user=QuizTestCase.random_user, title='Random notes',
                                                 file_type='txt', content='Someone else wrote this.')

        response = self.authenticated_client.get(reverse('material_quizzes', args=[other_material.pk]))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"error": "Material not found"})

    def test_get_material_quizzes_material_not_found(self):
        response = self.authenticated_client.get(reverse('material_quizzes', args=[99999]))
        self.assertEqual(response.status_code, 404)

    # Attempts

    def test_start_attempt(self):
        response = self.authenticated_client.post(reverse('create_attempt', args=[QuizTestCase.test_quiz.pk]))
        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertFalse(data['completed'])
        self.assertIsNone(data['score'])
        self.assertIsNone(data['completedAt'])
        self.assertIsNotNone(data['startedAt'])
        self.assertEqual(data['userId'], QuizTestCase.test_user.pk)

    def test_start_attempt_quiz_not_found(self):
        response = self.authenticated_client.post(reverse('create_attempt', args=[99999]))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['error'], "Quiz not found")

    def test_start_attempt_get_request_not_allowed(self):
        response = self.authenticated_client.get(reverse('create_attempt', args=[QuizTestCase.test_quiz.pk]))
        self.assertEqual(response.status_code, 405)

    def test_start_several_attempts_on_same_quiz(self):
        self.start_attempt()
        self.start_attempt()
        self.assertEqual(QuizAttempt.objects.filter(quiz=QuizTestCase.test_quiz, completed=False).count(), 2)

    def test_get_attempt_detail_and_user_attempts(self):
        attempt = self.start_attempt()

        response = self.authenticated_client.get(reverse('attempt_detail', args=[attempt.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['quizId'], QuizTestCase.test_quiz.pk)

        response = self.authenticated_client.get(reverse('user_attempts', args=[QuizTestCase.test_user.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertEqual([a['id'] for a in response.json()], [attempt.pk])

        response = self.random_client.get(reverse('attempt_detail', args=[attempt.pk]))
        self.assertEqual(response.status_code, 404)

    # Submission

    @patch("quiz.grading.grade_short_answer", return_value=True)
    def test_submit_all_correct(self, short_answer_grader):
        attempt = self.start_attempt()

        response = self.post_json(self.authenticated_client, reverse('submit_attempt', args=[attempt.pk]),
                                  {"answers": self.all_correct_answers(), "totalTime": 120})

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['score'], 100)
        self.assertEqual(data['totalCorrect'], 4)
        self.assertEqual(data['totalAnswered'], 4)
        self.assertTrue(data['attempt']['completed'])
        self.assertEqual(data['attempt']['score'], 100)
        self.assertEqual(data['attempt']['totalTime'], 120)
        self.assertIsNotNone(data['attempt']['completedAt'])

        short_answer_grader_kwargs = short_answer_grader.call_args[1]
        self.assertEqual(short_answer_grader_kwargs["question_text"], QuizTestCase.question_short.question_text)
        self.assertEqual(short_answer_grader_kwargs["expected_answer"], QuizTestCase.question_short.correct_answer)
        self.assertEqual(short_answer_grader_kwargs["student_answer"], "It is the centre of French politics.")

        user_answers = UserAnswer.objects.filter(attempt=attempt).order_by('id')
        self.assertEqual([a.question_id for a in user_answers],
                         [QuizTestCase.question_mc.pk, QuizTestCase.question_tf.pk,
                          QuizTestCase.question_fill.pk, QuizTestCase.question_short.pk])
        self.assertTrue(all(a.is_correct for a in user_answers))
        self.assertEqual(user_answers[2].user_answer, " paris ")

    @patch("quiz.grading.grade_short_answer", return_value=False)
    def test_submit_exact_match_is_case_sensitive(self, short_answer_grader):
        attempt = self.start_attempt()
        answers = [
            {"questionId": QuizTestCase.question_mc.pk, "answer": "paris"},
            {"questionId": QuizTestCase.question_tf.pk, "answer": "true"},
            {"questionId": QuizTestCase.question_fill.pk, "answer": "PARIS"},
            {"questionId": QuizTestCase.question_short.pk, "answer": "No idea"},
        ]

        response = self.post_json(self.authenticated_client, reverse('submit_attempt', args=[attempt.pk]),
                                  {"answers": answers, "totalTime": 30})

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['totalCorrect'], 1)
        self.assertEqual(data['score'], 25)

    @patch("quiz.grading.grade_short_answer", side_effect=OracleGradingFailure())
    def test_submit_short_answer_oracle_failure_is_incorrect(self, short_answer_grader):
        attempt = self.start_attempt()

        response = self.post_json(self.authenticated_client, reverse('submit_attempt', args=[attempt.pk]),
                                  {"answers": self.all_correct_answers(), "totalTime": 60})

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['totalCorrect'], 3)
        self.assertEqual(data['score'], 75)
        self.assertTrue(short_answer_grader.called)
        self.assertFalse(UserAnswer.objects.get(attempt=attempt, question=QuizTestCase.question_short).is_correct)

    @patch("quiz.grading.grade_short_answer", return_value=True)
    def test_submit_twice_fails_and_keeps_first_result(self, short_answer_grader):
        attempt = self.start_attempt()
        url = reverse('submit_attempt', args=[attempt.pk])

        first_response = self.post_json(self.authenticated_client, url,
                                        {"answers": self.all_correct_answers(), "totalTime": 100})
        self.assertEqual(first_response.status_code, 200)

        wrong_answers = [{"questionId": a["questionId"], "answer": "wrong"} for a in self.all_correct_answers()]
        second_response = self.post_json(self.authenticated_client, url, {"answers": wrong_answers, "totalTime": 5})

        self.assertEqual(second_response.status_code, 409)
        self.assertEqual(second_response.json()['error'], "This attempt has already been completed")

        attempt.refresh_from_db()
        self.assertEqual(attempt.score, 100)
        self.assertEqual(attempt.total_time, 100)

        user_answers = UserAnswer.objects.filter(attempt=attempt)
        self.assertEqual(user_answers.count(), 4)
        self.assertFalse(user_answers.filter(user_answer="wrong").exists())

    @patch("quiz.grading.grade_short_answer", return_value=True)
    def test_submit_losing_a_race_does_not_grade_twice(self, short_answer_grader):
        attempt = self.start_attempt()
        stale_attempt = QuizAttempt.objects.get(pk=attempt.pk)

        # Another request completes the attempt after this one has read it
        QuizAttempt.objects.filter(pk=attempt.pk).update(completed=True, score=50)

        with patch("quiz.helpers.get_user_attempt", return_value=stale_attempt):
            response = self.post_json(self.authenticated_client, reverse('submit_attempt', args=[attempt.pk]),
                                      {"answers": self.all_correct_answers(), "totalTime": 10})

        self.assertEqual(response.status_code, 409)
        attempt.refresh_from_db()
        self.assertEqual(attempt.score, 50)
        self.assertFalse(UserAnswer.objects.filter(attempt=attempt).exists())

    @patch("quiz.grading.grade_short_answer")
    def test_submit_answers_not_a_list(self, short_answer_grader):
        attempt = self.start_attempt()

        response = self.post_json(self.authenticated_client, reverse('submit_attempt', args=[attempt.pk]),
                                  {"answers": {"questionId": 1, "answer": "Paris"}, "totalTime": 10})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], "Answers must be an array")
        self.assertFalse(short_answer_grader.called)

        attempt.refresh_from_db()
        self.assertFalse(attempt.completed)
        self.assertIsNone(attempt.score)
        self.assertFalse(UserAnswer.objects.filter(attempt=attempt).exists())

    def test_submit_negative_total_time(self):
        attempt = self.start_attempt()

        response = self.post_json(self.authenticated_client, reverse('submit_attempt', args=[attempt.pk]),
                                  {"answers": [], "totalTime": -3})

        self.assertEqual(response.status_code, 400)
        self.assertTrue(response.json()['error'].startswith("Invalid submission at totalTime"))
        attempt.refresh_from_db()
        self.assertFalse(attempt.completed)

    @patch("quiz.grading.grade_short_answer", return_value=True)
    def test_submit_partial_answers_records_every_question(self, short_answer_grader):
        attempt = self.start_attempt()
        answers = [{"questionId": QuizTestCase.question_mc.pk, "answer": "Paris"}]

        response = self.post_json(self.authenticated_client, reverse('submit_attempt', args=[attempt.pk]),
                                  {"answers": answers, "totalTime": 15})

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['totalCorrect'], 1)
        self.assertEqual(data['totalAnswered'], 1)
        self.assertEqual(data['score'], 25)
        self.assertFalse(short_answer_grader.called)

        user_answers = UserAnswer.objects.filter(attempt=attempt)
        self.assertEqual(user_answers.count(), 4)
        self.assertIsNone(user_answers.get(question=QuizTestCase.question_tf).user_answer)
        self.assertFalse(user_answers.get(question=QuizTestCase.question_tf).is_correct)

    @patch("quiz.grading.grade_short_answer", return_value=True)
    def test_submit_blank_entries_count_as_answered(self, short_answer_grader):
        attempt = self.start_attempt()
        answers = [
            {"questionId": QuizTestCase.question_mc.pk, "answer": "Paris"},
            {"questionId": QuizTestCase.question_tf.pk, "answer": ""},
            {"questionId": QuizTestCase.question_fill.pk, "answer": "paris"},
            {"questionId": QuizTestCase.question_short.pk, "answer": ""},
        ]

        response = self.post_json(self.authenticated_client, reverse('submit_attempt', args=[attempt.pk]),
                                  {"answers": answers, "totalTime": 30})

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['score'], 50)
        self.assertEqual(data['totalCorrect'], 2)
        self.assertEqual(data['totalAnswered'], 4)
        self.assertFalse(short_answer_grader.called)

        blank = UserAnswer.objects.get(attempt=attempt, question=QuizTestCase.question_tf)
        self.assertEqual(blank.user_answer, "")
        self.assertFalse(blank.is_correct)

    def test_submit_quiz_without_questions_scores_zero(self):
        empty_quiz = Quiz.objects.create(title='empty quiz', user=QuizTestCase.test_user,
                                         material=QuizTestCase.material, total_questions=0)
        attempt = self.start_attempt(quiz=empty_quiz)

        response = self.post_json(self.authenticated_client, reverse('submit_attempt', args=[attempt.pk]),
                                  {"answers": [], "totalTime": 1})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['score'], 0)
        self.assertEqual(response.json()['totalCorrect'], 0)

    def test_submit_attempt_not_found(self):
        response = self.post_json(self.authenticated_client, reverse('submit_attempt', args=[99999]),
                                  {"answers": [], "totalTime": 1})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['error'], "Attempt not found")

    def test_submit_other_users_attempt(self):
        attempt = self.start_attempt()
        response = self.post_json(self.random_client, reverse('submit_attempt', args=[attempt.pk]),
                                  {"answers": [], "totalTime": 1})
        self.assertEqual(response.status_code, 404)
        attempt.refresh_from_db()
        self.assertFalse(attempt.completed)

    # Results

    def test_results_for_incomplete_attempt(self):
        attempt = self.start_attempt()
        response = self.authenticated_client.get(reverse('attempt_results', args=[attempt.pk]))
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['error'], "This attempt has not been completed yet")

    @patch("quiz.grading.grade_short_answer", return_value=True)
    def test_results_after_submission(self, short_answer_grader):
        attempt = self.start_attempt()
        answers = [
            {"questionId": QuizTestCase.question_mc.pk, "answer": "London"},
            {"questionId": QuizTestCase.question_fill.pk, "answer": "Paris"},
        ]
        self.post_json(self.authenticated_client, reverse('submit_attempt', args=[attempt.pk]),
                       {"answers": answers, "totalTime": 40})

        response = self.authenticated_client.get(reverse('attempt_results', args=[attempt.pk]))

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data['attempt']['completed'])
        self.assertEqual(data['attempt']['score'], 25)

        results = data['results']
        self.assertEqual(len(results), 4)
        self.assertEqual(results[0]['question']['id'], QuizTestCase.question_mc.pk)
        self.assertEqual(results[0]['question']['correctAnswer'], 'Paris')
        self.assertEqual(results[0]['question']['explanation'], 'Paris is the capital.')
        self.assertEqual(results[0]['userAnswer'], 'London')
        self.assertFalse(results[0]['isCorrect'])
        self.assertIsNone(results[1]['userAnswer'])
        self.assertFalse(results[1]['isCorrect'])
        self.assertEqual(results[2]['userAnswer'], 'Paris')
        self.assertTrue(results[2]['isCorrect'])

    def test_results_answer_missing_is_null_and_incorrect(self):
        attempt = QuizAttempt.objects.create(user=QuizTestCase.test_user, quiz=QuizTestCase.test_quiz,
                                             completed=True, score=0)

        response = self.authenticated_client.get(reverse('attempt_results', args=[attempt.pk]))

        self.assertEqual(response.status_code, 200)
        for result in response.json()['results']:
            self.assertIsNone(result['userAnswer'])
            self.assertFalse(result['isCorrect'])

    # Whole lifecycle

    @patch("quiz.helpers.generate_quiz_questions")
    def test_create_quiz_attempt_and_submit_end_to_end(self, generate_questions):
        generate_questions.return_value = make_generated_questions(5)

        response = self.post_json(self.authenticated_client,
                                  reverse('material_quizzes', args=[QuizTestCase.material.pk]),
                                  {"totalQuestions": 5, "questionType": "multiple-choice"})
        self.assertEqual(response.status_code, 201)
        quiz_id = response.json()['id']

        response = self.authenticated_client.get(reverse('quiz_questions', args=[quiz_id]))
        questions = response.json()
        self.assertEqual(len(questions), 5)

        response = self.authenticated_client.post(reverse('create_attempt', args=[quiz_id]))
        attempt_id = response.json()['id']

        answers = [
            {"questionId": q['id'], "answer": f"answer_{q['questionNumber']}" if q['questionNumber'] <= 3 else "wrong_1"}
            for q in questions
        ]

        response = self.post_json(self.authenticated_client, reverse('submit_attempt', args=[attempt_id]),
                                  {"answers": answers, "totalTime": 300})

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['score'], 60)
        self.assertEqual(data['totalCorrect'], 3)
        self.assertEqual(data['totalAnswered'], 5)
        self.assertTrue(data['attempt']['completed'])


class GradingTestCase(unittestTestCase):

    def make_question(self, question_type, correct_answer, pk=1):
        return Question(pk=pk, question_number=1, question_text="Question?", question_type=question_type,
                        correct_answer=correct_answer)

    def test_every_question_type_has_a_grader(self):
        self.assertEqual(set(GRADERS), set(QuestionType))

    def test_fill_blank_ignores_case_and_whitespace(self):
        question = self.make_question("fill-blank", "Paris")
        for answer in ["Paris", " paris ", "PARIS"]:
            self.assertTrue(grade_answer(question, answer))
        self.assertFalse(grade_answer(question, "Lyon"))
        self.assertFalse(grade_answer(question, None))

    def test_multiple_choice_and_true_false_are_exact(self):
        true_false = self.make_question("true-false", "True")
        self.assertTrue(grade_answer(true_false, "True"))
        self.assertFalse(grade_answer(true_false, "true"))
        self.assertFalse(grade_answer(true_false, " True"))

        multiple_choice = self.make_question("multiple-choice", "Paris")
        self.assertTrue(grade_answer(multiple_choice, "Paris"))
        self.assertFalse(grade_answer(multiple_choice, "paris"))
        self.assertFalse(grade_answer(multiple_choice, None))

    @patch("quiz.grading.grade_short_answer")
    def test_short_answer_uses_oracle(self, short_answer_grader):
        question = self.make_question("short-answer", "Light becomes chemical energy")

        short_answer_grader.return_value = True
        self.assertTrue(grade_answer(question, "Plants turn light into energy"))

        short_answer_grader.return_value = False
        self.assertFalse(grade_answer(question, "Plants eat soil"))

    @patch("quiz.grading.grade_short_answer")
    def test_short_answer_blank_answer_skips_oracle(self, short_answer_grader):
        question = self.make_question("short-answer", "Light becomes chemical energy")
        self.assertFalse(grade_answer(question, "   "))
        self.assertFalse(grade_answer(question, None))
        self.assertFalse(short_answer_grader.called)

    @patch("quiz.grading.grade_short_answer", side_effect=OracleGradingFailure())
    def test_short_answer_oracle_failure_is_incorrect(self, short_answer_grader):
        question = self.make_question("short-answer", "Light becomes chemical energy")
        self.assertFalse(grade_answer(question, "Plants turn light into energy"))

    def test_unknown_question_type_is_not_silently_skipped(self):
        question = self.make_question("essay", "Anything")
        with self.assertRaises(UngradableQuestion):
            grade_answer(question, "Anything")

    def test_compute_score(self):
        self.assertEqual(compute_score(3, 5), 60)
        self.assertEqual(compute_score(5, 5), 100)
        self.assertEqual(compute_score(0, 5), 0)
        self.assertEqual(compute_score(2, 3), 67)
        self.assertEqual(compute_score(1, 3), 33)
        # halves round up
        self.assertEqual(compute_score(1, 8), 13)
        self.assertEqual(compute_score(0, 0), 0)

    def test_match_answers_by_id_then_position(self):
        questions = [self.make_question("fill-blank", "a", pk=10), self.make_question("fill-blank", "b", pk=11),
                     self.make_question("fill-blank", "c", pk=12)]
        submitted = [SubmittedAnswer(answer="first"), SubmittedAnswer(question_id=12, answer="third")]

        matched = match_answers(questions, submitted)

        self.assertEqual([answer for _, answer in matched], ["first", None, "third"])


class LLMIntegrationTestCase(unittestTestCase):

    def test_extract_json_array_from_fenced_response(self):
        text = "Here is your quiz:\n```json\n" + example_response_json + "\n```\nGood luck!"
        items = extract_json_array(text)
        self.assertEqual(len(items), 2)
        self.assertEqual(items[0]["correctAnswer"], "Paris")

    def test_extract_json_array_skips_malformed_brackets(self):
        text = 'Options [a, b] are wrong, use [{"questionText": "Q", "correctAnswer": "A"}]'
        self.assertEqual(extract_json_array(text), [{"questionText": "Q", "correctAnswer": "A"}])

    def test_extract_json_array_without_array(self):
        with self.assertRaises(GenerationFailure):
            extract_json_array('{"questionText": "Q"}')
        with self.assertRaises(GenerationFailure):
            extract_json_array("")

    def test_parse_generated_questions_normalises_items(self):
        items = json.loads(example_response_json) + [
            {"questionText": "No answer here"},
            "not even an object",
            {"questionText": "Fill me", "questionType": "fill-blank", "options": ["x"], "correctAnswer": "y"},
        ]

        questions = parse_generated_questions(items, requested_type="mixed")

        self.assertEqual(len(questions), 3)
        self.assertEqual(questions[1].question_type, "true-false")
        self.assertEqual(questions[1].correct_answer, "True")
        self.assertEqual(questions[1].options, ["True", "False"])
        self.assertIsNone(questions[2].options)
        self.assertEqual(questions[2].explanation, "")

    def test_parse_generated_questions_unknown_type(self):
        items = [{"questionText": "Q", "questionType": "essay", "correctAnswer": "A"}]

        self.assertEqual(parse_generated_questions(items, requested_type="mixed"), [])

        questions = parse_generated_questions(items, requested_type="fill-blank")
        self.assertEqual(questions[0].question_type, "fill-blank")

    @patch("quiz.llm_integration.ChatOpenAI")
    def test_generate_quiz_questions(self, chat_model):
        chat_model.return_value = FakeListChatModel(responses=["```json\n" + example_response_json + "\n```"])

        questions = generate_quiz_questions(text="Paris is the capital of France.", title="Geography",
                                            question_type="mixed", difficulty="easy", count=2)

        self.assertEqual(len(questions), 2)
        self.assertEqual(questions[0].question_text, "What is the capital of France?")
        self.assertEqual(questions[0].options, ["London", "Paris", "Berlin", "Madrid"])

    @patch("quiz.llm_integration.ChatOpenAI")
    def test_generate_quiz_questions_unparseable_response(self, chat_model):
        chat_model.return_value = FakeListChatModel(responses=["Sorry, I cannot help with that."])

        with self.assertRaises(GenerationFailure):
            generate_quiz_questions(text="text", title="title", question_type="multiple-choice",
                                    difficulty="easy", count=2)

    @patch("quiz.llm_integration.ChatOpenAI")
    def test_generate_quiz_questions_empty_array(self, chat_model):
        chat_model.return_value = FakeListChatModel(responses=["[]"])

        with self.assertRaises(GenerationFailure):
            generate_quiz_questions(text="text", title="title", question_type="multiple-choice",
                                    difficulty="easy", count=2)

    @patch("quiz.llm_integration.ChatOpenAI", side_effect=Exception("no api key"))
    def test_generate_quiz_questions_model_error(self, chat_model):
        with self.assertRaises(GenerationFailure):
            generate_quiz_questions(text="text", title="title", question_type="multiple-choice",
                                    difficulty="easy", count=2)

    @patch("quiz.llm_integration.ChatOpenAI")
    def test_grade_short_answer_verdicts(self, chat_model):
        chat_model.return_value = FakeListChatModel(responses=["Correct", "incorrect", "The answer is correct."])

        self.assertTrue(grade_short_answer("Q", "expected", "student"))
        self.assertFalse(grade_short_answer("Q", "expected", "student"))
        self.assertTrue(grade_short_answer("Q", "expected", "student"))

    @patch("quiz.llm_integration.ChatOpenAI", side_effect=Exception("timeout"))
    def test_grade_short_answer_model_error(self, chat_model):
        with self.assertRaises(OracleGradingFailure):
            grade_short_answer("Q", "expected", "student")
