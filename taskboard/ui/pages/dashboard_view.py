import flet as ft
import logging
from typing import List, Optional

from config import (
    COLORS,
    FONT_SIZE_LG,
    FONT_SIZE_4XL,
    ICON_SIZE_3XL,
    SPACING_LG,
    SPACING_2XL,
    TASK_TITLE_MAX_LENGTH,
)
from events import AppEvent, EventBus, Subscription
from i18n import t
from models.entities import Task
from services.task_sync import TaskSync
from ui.components.task_card import TaskCard
from ui.helpers import SnackService, accent_btn, input_field

logger = logging.getLogger(__name__)


class DashboardView:
    """Task dashboard: greeting, session id, add form and task cards.

    The view owns the task listener through TaskSync. mount() starts it,
    unmount() cancels it so no snapshot reaches a discarded view. The task
    list shown is always the last snapshot the store delivered.
    """

    def __init__(
        self,
        page: ft.Page,
        sync: TaskSync,
        bus: EventBus,
        snack: Optional[SnackService] = None,
    ) -> None:
        self.page = page
        self.sync = sync
        self.bus = bus
        self.snack = snack
        self.tasks: List[Task] = []
        self.mounted = False
        self._error_sub: Optional[Subscription] = None
        self._build_controls()

    def _build_controls(self) -> None:
        self.user_id_text = ft.Text(
            t("connecting"),
            size=FONT_SIZE_LG,
            color=COLORS["done_text"],
            selectable=True,
        )
        self.task_input = input_field(
            t("new_task"),
            max_length=TASK_TITLE_MAX_LENGTH,
            on_submit=self._on_add_click,
            expand=True,
            disabled=True,
        )
        self.add_btn = accent_btn(t("add"), self._on_add_click, disabled=True)
        self.retry_btn = ft.TextButton(t("retry"), on_click=self._on_retry_click, visible=False)
        self.task_list = ft.Column(spacing=SPACING_LG)
        self.empty_state = ft.Container(
            content=ft.Column(
                [
                    ft.Icon(
                        ft.Icons.CHECK_CIRCLE_OUTLINE,
                        size=ICON_SIZE_3XL,
                        color=COLORS["done_text"],
                    ),
                    ft.Text(t("no_tasks"), color=COLORS["done_text"]),
                ],
                horizontal_alignment=ft.CrossAxisAlignment.CENTER,
            ),
            alignment=ft.Alignment.CENTER,
            visible=True,
        )

    # -- lifecycle ---------------------------------------------------------

    def mount(self) -> None:
        """Resolve the session and open the task listener."""
        if self.mounted:
            return
        self.mounted = True
        self._error_sub = self.bus.subscribe(AppEvent.STORE_ERROR, self._on_store_error)
        self.page.run_task(self.start)

    def unmount(self) -> None:
        """Cancel the listener. Pending writes are left to finish."""
        self.mounted = False
        self.sync.unsubscribe()
        if self._error_sub is not None:
            self._error_sub.unsubscribe()
            self._error_sub = None

    async def start(self) -> None:
        ready = await self.sync.initialize()
        if not self.mounted:
            return
        if ready:
            self.sync.subscribe(on_change=self._on_tasks_changed)
        self._refresh_session()
        self.page.update()

    # -- rendering ---------------------------------------------------------

    def _refresh_session(self) -> None:
        ready = self.sync.is_ready
        if ready:
            self.user_id_text.value = t("your_user_id").format(user_id=self.sync.user_id)
        elif self.sync.last_error:
            self.user_id_text.value = t("sign_in_failed").format(error=self.sync.last_error)
        else:
            self.user_id_text.value = t("connecting")
        # Mutation controls only after the session id is on screen
        self.task_input.disabled = not ready
        self.add_btn.disabled = not ready
        self.retry_btn.visible = not ready and bool(self.sync.last_error)

    def refresh(self) -> None:
        self.task_list.controls = [
            TaskCard(
                task,
                on_complete=self._on_complete,
                on_delete=self._on_delete,
                enabled=self.sync.is_ready,
            ).build()
            for task in self.tasks
        ]
        self.empty_state.visible = not self.tasks

    def _on_tasks_changed(self, tasks: List[Task]) -> None:
        if not self.mounted:
            return
        self.tasks = tasks
        self.refresh()
        self.page.update()

    def _on_store_error(self, data) -> None:
        error = data.get("error") if isinstance(data, dict) else str(data)
        if self.snack:
            self.snack.error(t("sync_error").format(error=error))

    # -- user actions ------------------------------------------------------

    def _on_add_click(self, e: Optional[ft.ControlEvent] = None) -> None:
        title = (self.task_input.value or "").strip()
        if not title:
            return
        self.page.run_task(self.add_task, title)

    async def add_task(self, title: str) -> None:
        result = await self.sync.add_task(title)
        if result.ok:
            self.task_input.value = ""
            self.page.update()

    def _on_complete(self, task_id: str) -> None:
        task = next((tk for tk in self.tasks if tk.id == task_id), None)
        if task is None:
            logger.warning(f"Completion requested for unknown task {task_id}")
            return
        self.page.run_task(self.toggle_task, task_id, task.completed)

    async def toggle_task(self, task_id: str, current_status: bool) -> None:
        result = await self.sync.toggle_task(task_id, current_status)
        if not result.ok and self.mounted:
            # The checkbox already shows the clicked value; redraw from the last snapshot
            self.refresh()
            self.page.update()

    def _on_delete(self, task_id: str) -> None:
        self.page.run_task(self.sync.delete_task, task_id)

    def _on_retry_click(self, e: Optional[ft.ControlEvent] = None) -> None:
        self.page.run_task(self.start)

    def build(self) -> ft.Column:
        self._refresh_session()
        self.refresh()
        header = ft.Column(
            [
                ft.Text(t("greeting"), size=FONT_SIZE_4XL, weight="bold"),
                ft.Row([self.user_id_text, self.retry_btn]),
            ],
            spacing=SPACING_LG,
        )
        return ft.Column(
            [
                header,
                ft.Row([self.task_input, self.add_btn]),
                self.empty_state,
                self.task_list,
            ],
            spacing=SPACING_2XL,
            scroll=ft.ScrollMode.AUTO,
            expand=True,
        )
