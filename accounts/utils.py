from study_aid.utils import isoformat_or_none


def serialize_user(user) -> dict:
    return {
        "id": user.pk,
        "username": user.username,
        "email": user.email,
        "displayName": user.get_full_name() or user.username,
        "isAdmin": user.is_staff,
        "createdAt": isoformat_or_none(user.date_joined),
    }
