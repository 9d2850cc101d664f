from dataclasses import dataclass
from typing import Optional

from config import COLORS, OPACITY_DONE
from i18n import t
from models.entities import Task


@dataclass
class TaskDisplayData:
    """Computed display data for a task, separating logic from presentation."""
    title: str
    completed: bool
    title_color: Optional[str]
    background: str
    opacity: float
    strike_through: bool
    toggle_tooltip: str
    status_label: Optional[str]


class TaskPresenter:
    """Computes display values for tasks without rendering."""

    @staticmethod
    def get_display_title(task: Task) -> str:
        return task.title.strip() or t("untitled")

    @classmethod
    def create_display_data(cls, task: Task) -> TaskDisplayData:
        done = task.completed
        return TaskDisplayData(
            title=cls.get_display_title(task),
            completed=done,
            title_color=COLORS["done_text"] if done else None,
            background=COLORS["done_bg"] if done else COLORS["card"],
            opacity=OPACITY_DONE if done else 1.0,
            strike_through=done,
            toggle_tooltip=t("mark_undone") if done else t("mark_done"),
            status_label=t("done") if done else None,
        )
