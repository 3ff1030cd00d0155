from django.urls import path

from materials import views

urlpatterns = [
    path("materials", views.upload_material, name="upload_material"),
    path("materials/<int:pk>", views.material_detail, name="material_detail"),
    path("materials/<int:pk>/summaries", views.material_summaries, name="material_summaries"),
    path("summaries/<int:pk>", views.summary_detail, name="summary_detail"),
    path("users/<int:user_id>/materials", views.user_materials, name="user_materials"),
    path("users/<int:user_id>/summaries", views.user_summaries, name="user_summaries"),
]
