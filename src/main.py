from typing import Callable, Optional

from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.message import Message
from textual.widgets import LoadingIndicator

from api.errors import ApiError
from utils import config
from utils.logger import get_logger
from utils.messages import (
    CartChangedMessage,
    QuitRequestedMessage,
    UserLoginMessage,
    UserLogoutMessage,
)
from utils.state import AppState
from views.scr_cart import CartScreen
from views.scr_login import LoginScreen
from views.scr_past_orders import PastOrdersScreen
from views.scr_prod_search import ProdSearchScreen

_logger = get_logger(__name__)


class BuyPointApp(App):
    BINDINGS = [
        Binding("ctrl+t", "switch_light", "Toggle Theme", show=True),
    ]

    MODES = {
        "prod_search": ProdSearchScreen,
        "cart": CartScreen,
        "past_orders": PastOrdersScreen,
    }

    CUSTOMER_MODES = {
        "prod_search": "Products",
        "cart": "Cart",
        "past_orders": "Past Orders",
    }

    state: AppState

    def __init__(self, state: Optional[AppState] = None):
        super().__init__()
        self.state = state or AppState()
        self.state.navigate = self.navigate
        self.state.notify = self.notify
        self.state.cart.subscribe(lambda _: self.broadcast(CartChangedMessage))
        self._in_login = False

    def compose(self) -> ComposeResult:
        yield LoadingIndicator()

    async def on_mount(self) -> None:
        await self.state.startup()
        if self.state.session.is_authenticated:
            await self.switch_mode("prod_search")
        else:
            self.main_flow()

    def broadcast(self, message_type: Callable[[], Message]) -> None:
        """Deliver a fresh message to every screen on the current stack."""
        for screen in self.screen_stack:
            screen.post_message(message_type())

    def navigate(self, route: str) -> None:
        """Route requests coming from the stores. Only the login surface exists."""
        if route == config.LOGIN_ROUTE:
            self.main_flow()
        else:
            _logger.warning(f"Unknown route {route!r}")

    def action_switch_light(self):
        if self.theme == "textual-dark":
            self.theme = "solarized-light"
        else:
            self.theme = "textual-dark"
        self.notify(f"Theme changed to {self.theme}")

    @on(UserLogoutMessage)
    @work
    async def handle_user_logout(self):
        try:
            await self.state.logout()
        except ApiError as e:
            self.notify(e.message or "Logout failed", severity="error")
            return
        self.notify("Logout successful.")

    @on(QuitRequestedMessage)
    @work
    async def handle_quit(self):
        await self.state.shutdown()
        self.exit()

    @work(group="main-flow")
    async def main_flow(self):
        if self._in_login:
            return
        self._in_login = True
        try:
            logged_in = await self.push_screen_wait(LoginScreen())
        finally:
            self._in_login = False

        if logged_in:
            self.broadcast(UserLoginMessage)
        await self.switch_mode("prod_search")


def run() -> None:
    BuyPointApp().run()


if __name__ == "__main__":
    run()
