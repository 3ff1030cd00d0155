from django import forms
from django.conf import settings
from django.core.validators import FileExtensionValidator


class MaterialUploadForm(forms.Form):
    file = forms.FileField(validators=[FileExtensionValidator(settings.ALLOWED_MATERIAL_EXTENSIONS)])
    title = forms.CharField(label="Title", max_length=255, required=False)
    description = forms.CharField(label="Description", required=False)
    subject = forms.CharField(label="Subject", max_length=128, required=False)

    def clean_file(self):
        file = self.cleaned_data.get("file")
        if file and file.size > settings.MAX_UPLOAD_SIZE:
            raise forms.ValidationError(
                f"File is too large: {file.size} bytes (max {settings.MAX_UPLOAD_SIZE})")
        return file
