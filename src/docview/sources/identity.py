"""Identity providers."""

from typing import Optional

from docview.models import UserIdentity


class StaticIdentityProvider:
    """Identity fixed at construction; sign in/out swaps the user."""

    def __init__(self, user: Optional[UserIdentity] = None):
        self._user = user

    def current_user(self) -> Optional[UserIdentity]:
        return self._user

    def sign_in(self, user: UserIdentity) -> None:
        self._user = user

    def sign_out(self) -> None:
        self._user = None
