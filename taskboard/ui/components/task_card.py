import flet as ft
from typing import Callable, Optional

from config import COLORS, BORDER_RADIUS, PADDING_2XL
from i18n import t
from models.entities import Task
from ui.presenters.task_presenter import TaskPresenter


class TaskCard:
    """Single task row. A pure function of its task and callback props.

    The card keeps no state of its own: toggling the checkbox hands the task
    id to on_complete and the owner decides what to do with it.
    """

    def __init__(
        self,
        task: Task,
        on_complete: Callable[[str], None],
        on_delete: Optional[Callable[[str], None]] = None,
        enabled: bool = True,
    ) -> None:
        self.task = task
        self.on_complete = on_complete
        self.on_delete = on_delete
        self.enabled = enabled
        self.display = TaskPresenter.create_display_data(task)

    def _on_check(self, e: Optional[ft.ControlEvent]) -> None:
        self.on_complete(self.task.id)

    def _on_delete_click(self, e: Optional[ft.ControlEvent]) -> None:
        if self.on_delete:
            self.on_delete(self.task.id)

    def _title(self) -> ft.Text:
        style = (
            ft.TextStyle(decoration=ft.TextDecoration.LINE_THROUGH)
            if self.display.strike_through else None
        )
        return ft.Text(
            self.display.title,
            weight="bold",
            color=self.display.title_color,
            style=style,
            expand=True,
        )

    def build(self) -> ft.Container:
        cb = ft.Checkbox(
            value=self.display.completed,
            on_change=self._on_check,
            tooltip=self.display.toggle_tooltip,
            disabled=not self.enabled,
        )
        controls = [cb, self._title()]
        if self.display.status_label:
            controls.append(
                ft.Text(self.display.status_label, size=10, color=COLORS["done_text"])
            )
        if self.on_delete:
            controls.append(
                ft.IconButton(
                    ft.Icons.DELETE_OUTLINE,
                    icon_color=COLORS["danger"],
                    tooltip=t("delete"),
                    on_click=self._on_delete_click,
                    disabled=not self.enabled,
                )
            )
        return ft.Container(
            padding=PADDING_2XL,
            bgcolor=self.display.background,
            border_radius=BORDER_RADIUS,
            opacity=self.display.opacity,
            data=self.task,
            content=ft.Row(controls),
        )
