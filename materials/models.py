from django.db import models

from django.contrib.auth.models import User


def user_directory_path(instance, filename):
    # file will be uploaded to MEDIA_ROOT / user_<id>/<filename>
    return 'user_{0}/{1}'.format(instance.user.id, filename)


class Material(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="materials")
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    subject = models.CharField(max_length=128, blank=True, default="")
    file_type = models.CharField(max_length=16)
    upload_file = models.FileField(upload_to=user_directory_path, blank=True)
    # Extracted plain text; quizzes and summaries need this to be non-empty
    content = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return self.title

    @property
    def has_content(self) -> bool:
        return bool(self.content and self.content.strip())


class Summary(models.Model):
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="summaries")
    material = models.ForeignKey(Material, on_delete=models.CASCADE, related_name="summaries")
    title = models.CharField(max_length=300)
    content = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        verbose_name_plural = "summaries"

    def __str__(self):
        return self.title
