import flet as ft
import logging

from typing import Optional

from config import APP_NAME, COLORS, AppConfig, PageType, Route
from core import ServiceContainer, bootstrap, shutdown
from events import AppEvent, EventBus, event_bus
from i18n import t
from models.entities import AppState
from store import StoreError
from ui.helpers import SnackService
from ui.navigation import NavigationShell
from ui.pages.about_view import AboutPage
from ui.pages.dashboard_view import DashboardView
from ui.pages.login_view import LoginView

logger = logging.getLogger(__name__)


class TaskboardApp:
    """Main application class: login screen first, then the navigation shell."""

    def __init__(
        self,
        page: ft.Page,
        config: AppConfig,
        bus: Optional[EventBus] = None,
    ) -> None:
        self.page = page
        self.config = config
        self.bus = bus or event_bus
        self.state = AppState()
        self.services: Optional[ServiceContainer] = None
        self.shell: Optional[NavigationShell] = None

        self.page.title = APP_NAME
        self.page.theme_mode = ft.ThemeMode.DARK
        self.page.bgcolor = COLORS["bg"]
        self.snack = SnackService(page)

        self.login_view = LoginView(
            page,
            on_authenticated=self._on_authenticated,
            delay_seconds=config.login_delay_seconds,
        )
        self.root = ft.Container(content=self.login_view.build(), expand=True)

        # Register cleanup on page close
        self.page.on_close = self._on_page_close
        self.page.add(self.root)

    async def _on_authenticated(self) -> None:
        """Called by the login view once the simulated sign-in is done."""
        try:
            self.services = await bootstrap(self.config, self.bus)
        except StoreError as e:
            logger.error(f"Could not open the task store: {e}")
            self.snack.error(t("sync_error").format(error=e))
            return
        except ValueError as e:
            logger.error(f"Invalid task collection settings: {e}")
            self.snack.error(t("sync_error").format(error=e))
            return
        self.state.signed_in = True
        self.bus.emit(AppEvent.LOGGED_IN)
        self._build_shell()

    def _build_shell(self) -> None:
        self.shell = NavigationShell(self.page, self.state, self.bus)
        dashboard = DashboardView(self.page, self.services.tasks, self.bus, self.snack)
        about = AboutPage(navigate=self.shell.go)
        self.shell.register(Route.DASHBOARD, t("nav_dashboard"), dashboard)
        self.shell.register(Route.ABOUT, t("nav_about"), about)
        self.root.content = self.shell.build()
        self.shell.go(Route.DASHBOARD)

    def _on_page_close(self, e: ft.ControlEvent) -> None:
        """Handle page close - cleanup resources."""
        self._cleanup()

    def _cleanup(self) -> None:
        """Release the task listener and close the store."""
        if self.shell is not None:
            self.shell.close()
        self.state.current_page = PageType.LOGIN
        if self.services is None:
            return
        services = self.services
        self.services = None

        async def cleanup_all() -> None:
            try:
                await shutdown(services)
            except StoreError as e:
                logger.warning(f"Error closing the task store on cleanup: {e}")

        try:
            self.page.run_task(cleanup_all)
        except RuntimeError as e:
            # Page may be closing or event loop unavailable - expected during shutdown
            logger.debug(f"Could not schedule cleanup (page closing): {e}")


def create_app(page: ft.Page, config: Optional[AppConfig] = None) -> TaskboardApp:
    """Factory function to create the application."""
    return TaskboardApp(page, config or AppConfig.from_env())
