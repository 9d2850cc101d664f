import flet as ft
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from config import COLORS, PageType, Route, PADDING_2XL, SPACING_MD
from events import AppEvent, EventBus
from models.entities import AppState

logger = logging.getLogger(__name__)

ROUTE_PAGES: Dict[str, PageType] = {
    Route.DASHBOARD: PageType.DASHBOARD,
    Route.ABOUT: PageType.ABOUT,
}


@dataclass
class RouteEntry:
    route: str
    label: str
    view: Any  # anything with build(), mount() and unmount()


class NavigationShell:
    """Maps routes to views and renders the link list between them.

    Only one view is mounted at a time: leaving a route unmounts its view
    before the next one is mounted.
    """

    def __init__(self, page: ft.Page, state: AppState, bus: EventBus) -> None:
        self.page = page
        self.state = state
        self.bus = bus
        self.routes: Dict[str, RouteEntry] = {}
        self.current_route: Optional[str] = None
        self.content = ft.Container(expand=True, padding=PADDING_2XL)
        self._links: Dict[str, ft.TextButton] = {}
        self._link_row = ft.Row(spacing=SPACING_MD)

    def register(self, route: str, label: str, view: Any) -> None:
        self.routes[route] = RouteEntry(route, label, view)
        link = ft.TextButton(label, on_click=lambda e, r=route: self.go(r))
        self._links[route] = link
        self._link_row.controls.append(link)

    def resolve(self, route: Optional[str]) -> str:
        """Return a known route, falling back to the dashboard."""
        if route in self.routes:
            return route
        if route is not None:
            logger.debug(f"Unknown route {route!r}, falling back to {Route.DASHBOARD}")
        return Route.DASHBOARD

    @property
    def current_view(self) -> Optional[Any]:
        entry = self.routes.get(self.current_route)
        return entry.view if entry else None

    def go(self, route: Optional[str]) -> None:
        """Navigate to a route, switching the mounted view."""
        target = self.resolve(route)
        if target == self.current_route:
            return
        previous = self.current_view
        if previous is not None:
            previous.unmount()
        self.current_route = target
        entry = self.routes[target]
        self.state.current_page = ROUTE_PAGES.get(target, PageType.DASHBOARD)
        entry.view.mount()
        self.content.content = entry.view.build()
        self._update_links()
        self.bus.emit(AppEvent.NAV_CHANGED, target)
        self.page.update()

    def _update_links(self) -> None:
        for route, link in self._links.items():
            link.style = ft.ButtonStyle(
                color=COLORS["accent"] if route == self.current_route else COLORS["done_text"],
            )

    def close(self) -> None:
        """Unmount the current view (page closing)."""
        view = self.current_view
        if view is not None:
            view.unmount()
        self.current_route = None

    def build(self) -> ft.Column:
        return ft.Column(
            [
                ft.Container(content=self._link_row, padding=PADDING_2XL, bgcolor=COLORS["sidebar"]),
                self.content,
            ],
            spacing=0,
            expand=True,
        )

