from django.contrib import admin
from django.db.models import Count

from quiz.models import Quiz, Question, QuizAttempt, UserAnswer


class QuestionInline(admin.TabularInline):
    model = Question
    extra = 0


class QuizAdmin(admin.ModelAdmin):
    list_display = ('title', 'user', 'difficulty', 'question_type', 'total_questions')
    list_filter = ('user', 'difficulty', 'question_type')
    search_fields = ('title', 'user__username')
    inlines = [QuestionInline]

    def changelist_view(self, request, extra_context=None):
        quizzes_per_user = (
            Quiz.objects.values('user__username')
            .annotate(count=Count('id'))
            .order_by('-count')
        )

        extra_context = extra_context or {}
        extra_context['total_quizzes'] = Quiz.objects.count()
        extra_context['quizzes_per_user'] = quizzes_per_user

        return super().changelist_view(request, extra_context=extra_context)


class QuizAttemptAdmin(admin.ModelAdmin):
    list_display = ('quiz', 'user', 'completed', 'score', 'started_at', 'completed_at')
    list_filter = ('completed', 'user')
    search_fields = ('quiz__title', 'user__username')


admin.site.register(Quiz, QuizAdmin)
admin.site.register(Question)
admin.site.register(QuizAttempt, QuizAttemptAdmin)
admin.site.register(UserAnswer)
