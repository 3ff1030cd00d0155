from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend
from django.db.models import Q

UserModel = get_user_model()


class UsernameOrEmailBackend(ModelBackend):
    """
    Sign in with either the username or the e-mail address.

    Inactive accounts are still returned from ``authenticate`` so the login
    form can tell the user why they were refused; ``get_user`` keeps the
    default active check for existing sessions.
    """

    def authenticate(self, request, username=None, password=None, **kwargs):
        if username is None:
            username = kwargs.get(UserModel.USERNAME_FIELD)
        if not username or password is None:
            return None

        candidates = UserModel._default_manager.filter(Q(username=username) | Q(email__iexact=username))

        # an exact username match wins over someone else's e-mail
        for user in sorted(candidates, key=lambda u: u.username != username):
            if user.check_password(password):
                return user

        if not candidates:
            # run the hasher anyway so unknown logins take as long as wrong passwords
            UserModel().set_password(password)

        return None
