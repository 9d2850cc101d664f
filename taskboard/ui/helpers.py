import flet as ft
from typing import Optional

from config import COLORS, SNACK_DURATION_MS, BORDER_RADIUS


def accent_btn(text: str, on_click, disabled: bool = False) -> ft.Button:
    """Primary action button (Add, Sign in)."""
    return ft.Button(
        text,
        on_click=on_click,
        disabled=disabled,
        bgcolor=COLORS["accent"],
        color=COLORS["white"],
    )


def input_field(label: str, password: bool = False, **kwargs) -> ft.TextField:
    """Text input in the app's dark style. Extra kwargs go to ft.TextField."""
    return ft.TextField(
        label=label,
        password=password,
        can_reveal_password=password,
        bgcolor=COLORS["input_bg"],
        border_color=COLORS["border"],
        focused_border_color=COLORS["accent"],
        border_radius=BORDER_RADIUS,
        **kwargs,
    )


class SnackService:
    """Bottom-of-page feedback shared by every view of one page.

    A single SnackBar lives in page.overlay. Each message replaces the
    previous one.
    """

    def __init__(self, page: ft.Page) -> None:
        self.page = page
        self.message = ft.Text("", color=COLORS["white"])
        self.snack = ft.SnackBar(
            content=self.message,
            bgcolor=COLORS["card"],
            duration=SNACK_DURATION_MS,
        )
        page.overlay.append(self.snack)

    def show(self, message: str, color: Optional[str] = None) -> None:
        self.message.value = message
        self.snack.bgcolor = color or COLORS["card"]
        self.snack.open = True
        self.page.update()

    def error(self, message: str) -> None:
        self.show(message, COLORS["danger"])
