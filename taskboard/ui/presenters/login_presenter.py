import asyncio
import inspect
import logging
from typing import Any, Callable, Optional

from config import LOGIN_DELAY_SECONDS
from i18n import t
from models.entities import Credentials

logger = logging.getLogger(__name__)


class LoginPresenter:
    """Login form state and submit flow, without rendering.

    Sign-in is simulated: after a fixed delay the on_authenticated callback
    runs once. Credentials are only checked for presence.
    """

    def __init__(
        self,
        on_authenticated: Callable[[], Any],
        delay_seconds: float = LOGIN_DELAY_SECONDS,
        on_state_change: Optional[Callable[[], None]] = None,
    ) -> None:
        self.on_authenticated = on_authenticated
        self.delay_seconds = delay_seconds
        self.on_state_change = on_state_change
        self.credentials = Credentials()
        self.busy = False
        self.error: Optional[str] = None

    @property
    def email(self) -> str:
        return self.credentials.email

    @property
    def password(self) -> str:
        return self.credentials.password

    @property
    def can_submit(self) -> bool:
        return not self.busy and self.credentials.is_complete()

    @property
    def submit_label(self) -> str:
        return t("signing_in") if self.busy else t("sign_in")

    def set_email(self, value: Optional[str]) -> None:
        self.credentials.email = value or ""

    def set_password(self, value: Optional[str]) -> None:
        self.credentials.password = value or ""

    def _changed(self) -> None:
        if self.on_state_change:
            self.on_state_change()

    async def submit(self) -> bool:
        """Run the simulated sign-in.

        Returns True when the callback was invoked, False when the form was
        incomplete or a submit is already in progress.
        """
        if self.busy:
            return False
        if not self.credentials.is_complete():
            self.error = t("fields_required")
            self._changed()
            return False

        self.error = None
        self.busy = True
        self._changed()
        await asyncio.sleep(self.delay_seconds)
        self.busy = False
        self._changed()

        logger.info("Simulated sign-in completed")
        result = self.on_authenticated()
        if inspect.isawaitable(result):
            await result
        return True
