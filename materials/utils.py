from study_aid.utils import isoformat_or_none


def serialize_material(material) -> dict:
    return {
        "id": material.pk,
        "userId": material.user_id,
        "title": material.title,
        "description": material.description,
        "subject": material.subject,
        "fileType": material.file_type,
        "fileUrl": material.upload_file.url if material.upload_file else None,
        "content": material.content,
        "createdAt": isoformat_or_none(material.created_at),
    }


def serialize_summary(summary) -> dict:
    return {
        "id": summary.pk,
        "userId": summary.user_id,
        "materialId": summary.material_id,
        "title": summary.title,
        "content": summary.content,
        "createdAt": isoformat_or_none(summary.created_at),
    }
