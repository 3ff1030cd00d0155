import logging

from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST, require_http_methods

from materials.forms import MaterialUploadForm
from materials.helpers import create_material_from_upload, create_summary_for_material
from materials.models import Material, Summary
from materials.utils import serialize_material, serialize_summary
from study_aid.decorators import login_required_json, handle_study_aid_errors
from study_aid.exceptions import NotFound
from study_aid.utils import check_request_user, form_error_response_body

logger = logging.getLogger("study_aid")


def get_user_material(request, pk) -> Material:
    try:
        return Material.objects.get(pk=pk, user=request.user)
    except Material.DoesNotExist:
        raise NotFound("Material not found")


@require_POST
@login_required_json
@handle_study_aid_errors
def upload_material(request):
    form = MaterialUploadForm(request.POST, request.FILES)

    if not form.is_valid():
        logger.error(form.errors)
        return JsonResponse(form_error_response_body(form), status=400)

    material = create_material_from_upload(
        user=request.user,
        upload=form.cleaned_data["file"],
        title=form.cleaned_data["title"],
        description=form.cleaned_data["description"],
        subject=form.cleaned_data["subject"],
    )

    return JsonResponse(serialize_material(material), status=201)


@require_GET
@login_required_json
@handle_study_aid_errors
def material_detail(request, pk):
    material = get_user_material(request, pk)
    return JsonResponse(serialize_material(material))


@require_GET
@login_required_json
@handle_study_aid_errors
def user_materials(request, user_id):
    check_request_user(request, user_id)
    materials = Material.objects.filter(user=request.user)
    return JsonResponse([serialize_material(m) for m in materials], safe=False)


@require_http_methods(["GET", "POST"])
@login_required_json
@handle_study_aid_errors
def material_summaries(request, pk):
    material = get_user_material(request, pk)

    if request.method == "POST":
        summary = create_summary_for_material(material)
        return JsonResponse(serialize_summary(summary), status=201)

    summaries = Summary.objects.filter(material=material)
    return JsonResponse([serialize_summary(s) for s in summaries], safe=False)


@require_GET
@login_required_json
@handle_study_aid_errors
def summary_detail(request, pk):
    try:
        summary = Summary.objects.get(pk=pk, user=request.user)
    except Summary.DoesNotExist:
        raise NotFound("Summary not found")

    return JsonResponse(serialize_summary(summary))


@require_GET
@login_required_json
@handle_study_aid_errors
def user_summaries(request, user_id):
    check_request_user(request, user_id)
    summaries = Summary.objects.filter(user=request.user)
    return JsonResponse([serialize_summary(s) for s in summaries], safe=False)
