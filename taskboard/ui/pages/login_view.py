import flet as ft
from typing import Any, Callable, Optional

from config import (
    COLORS,
    BORDER_RADIUS_LG,
    FONT_SIZE_SM,
    FONT_SIZE_4XL,
    ICON_SIZE_2XL,
    LOGIN_CARD_WIDTH,
    LOGIN_DELAY_SECONDS,
    PADDING_4XL,
    SPACING_2XL,
)
from i18n import t
from ui.helpers import input_field
from ui.presenters.login_presenter import LoginPresenter


class LoginView:
    """Sign-in screen: email, password and a submit button.

    While the simulated sign-in runs, the button is disabled and shows a
    busy label. on_authenticated is called once the delay has passed.
    """

    def __init__(
        self,
        page: ft.Page,
        on_authenticated: Callable[[], Any],
        delay_seconds: float = LOGIN_DELAY_SECONDS,
    ) -> None:
        self.page = page
        self.presenter = LoginPresenter(
            on_authenticated,
            delay_seconds=delay_seconds,
            on_state_change=self._sync,
        )
        self._build_controls()

    def _build_controls(self) -> None:
        self.email_field = input_field(
            t("email"),
            keyboard_type=ft.KeyboardType.EMAIL,
            on_change=self._on_email_change,
            autofocus=True,
        )
        self.password_field = input_field(
            t("password"),
            password=True,
            on_change=self._on_password_change,
            on_submit=self._on_submit,
        )
        self.error_text = ft.Text("", color=COLORS["danger"], size=FONT_SIZE_SM, visible=False)
        self.loading = ft.ProgressRing(width=16, height=16, stroke_width=2, visible=False)
        self.submit_label = ft.Text(t("sign_in"))
        self.submit_btn = ft.Button(
            content=self.submit_label,
            bgcolor=COLORS["accent"],
            color=COLORS["white"],
            on_click=self._on_submit,
            expand=True,
        )

    def _on_email_change(self, e: ft.ControlEvent) -> None:
        self.presenter.set_email(e.control.value)

    def _on_password_change(self, e: ft.ControlEvent) -> None:
        self.presenter.set_password(e.control.value)

    def _on_submit(self, e: Optional[ft.ControlEvent] = None) -> None:
        # Disabled controls can still fire on_submit from the keyboard
        if self.presenter.busy:
            return
        self.page.run_task(self.presenter.submit)

    def _sync(self) -> None:
        """Mirror presenter state into the controls."""
        busy = self.presenter.busy
        self.submit_btn.disabled = busy
        self.submit_label.value = self.presenter.submit_label
        self.loading.visible = busy
        self.email_field.disabled = busy
        self.password_field.disabled = busy
        self.error_text.value = self.presenter.error or ""
        self.error_text.visible = bool(self.presenter.error)
        self.page.update()

    def build(self) -> ft.Container:
        card = ft.Container(
            width=LOGIN_CARD_WIDTH,
            bgcolor=COLORS["card"],
            border_radius=BORDER_RADIUS_LG,
            padding=PADDING_4XL,
            content=ft.Column(
                [
                    ft.Icon(ft.Icons.CHECKLIST, size=ICON_SIZE_2XL, color=COLORS["accent"]),
                    ft.Text(t("welcome"), size=FONT_SIZE_4XL, weight="bold"),
                    self.email_field,
                    self.password_field,
                    self.error_text,
                    ft.Row([self.loading, self.submit_btn]),
                    ft.Text(
                        t("session_private"),
                        size=FONT_SIZE_SM,
                        color=COLORS["done_text"],
                        text_align=ft.TextAlign.CENTER,
                    ),
                ],
                horizontal_alignment=ft.CrossAxisAlignment.CENTER,
                spacing=SPACING_2XL,
                tight=True,
            ),
        )
        return ft.Container(
            content=card,
            alignment=ft.Alignment.CENTER,
            expand=True,
        )
