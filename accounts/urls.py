from django.urls import path

from accounts import views

urlpatterns = [
    path("users", views.sign_up, name="signup"),
    path("users/<int:pk>", views.user_detail, name="user_detail"),
    path("auth/login", views.login_user, name="login"),
    path("auth/logout", views.logout_user, name="logout"),
    path("auth/csrf", views.csrf, name="csrf"),
]
