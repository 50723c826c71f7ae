from django.contrib.auth import get_user_model
from django.contrib.auth.backends import ModelBackend
from django.db.models import Q


class UsernameOrEmailBackend(ModelBackend):
    """Accept either the username or the email in the ``username`` credential.

    The JWT obtain endpoint authenticates through this backend, so the same
    login form works for both identifiers.
    """

    def authenticate(self, request, username=None, password=None, **kwargs):
        login = username or kwargs.get("email")
        if not login or password is None:
            return None

        user_model = get_user_model()
        user = (
            user_model.objects.filter(Q(email__iexact=login) | Q(username__iexact=login))
            .order_by("id")
            .first()
        )
        if user is None:
            # Run the hasher anyway to even out response timing.
            user_model().set_password(password)
            return None

        if user.check_password(password) and self.user_can_authenticate(user):
            return user
        return None
