import flet as ft
from typing import Callable

from config import (
    APP_NAME,
    COLORS,
    BORDER_RADIUS,
    FONT_SIZE_SM,
    FONT_SIZE_XL,
    FONT_SIZE_4XL,
    PADDING_3XL,
    Route,
)
from i18n import t


class AboutPage:
    def __init__(self, navigate: Callable[[str], None]) -> None:
        self.navigate = navigate

    def mount(self) -> None:
        pass

    def unmount(self) -> None:
        pass

    def build(self) -> ft.Column:
        back_btn = ft.IconButton(
            ft.Icons.ARROW_BACK,
            tooltip=t("back"),
            on_click=lambda e: self.navigate(Route.DASHBOARD),
            icon_color=COLORS["accent"],
        )
        header = ft.Row([back_btn, ft.Text(t("about_title"), size=FONT_SIZE_4XL, weight="bold")])

        info_card = ft.Container(
            content=ft.Column(
                [
                    ft.Row([
                        ft.Icon(ft.Icons.INFO_OUTLINE, color=COLORS["accent"]),
                        ft.Text(APP_NAME, weight="bold", size=FONT_SIZE_XL),
                    ], spacing=10),
                    ft.Text(t("about_body"), size=FONT_SIZE_SM, color=COLORS["done_text"]),
                    ft.Text(t("about_identity"), size=FONT_SIZE_SM, color=COLORS["done_text"]),
                ],
                spacing=10,
            ),
            bgcolor=COLORS["card"],
            padding=PADDING_3XL,
            border_radius=BORDER_RADIUS,
        )

        return ft.Column(
            [header, ft.Divider(height=20, color="transparent"), info_card],
            spacing=15,
            scroll=ft.ScrollMode.AUTO,
        )
