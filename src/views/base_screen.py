from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.events import ScreenResume
from textual.screen import Screen
from textual.widgets import Button, Footer, Header, Label, ListItem, ListView, Markdown

from utils.messages import (
    CartChangedMessage,
    UserLoginMessage,
    UserLogoutMessage,
)
from utils.pure import generate_markdown_table
from views.modal_dialog import DialogModal, QuitDialogModal


class Sidebar(Container):
    DEFAULT_CSS = """
    Sidebar {
        dock: left;
        width: 30;
        border-right: vkey $primary;
        padding: 0 1;
    }
    #btn-logout, #btn-login {
        width: 100%;
    }
    """

    init_mode = ""

    def compose(self) -> ComposeResult:
        yield Label("User Info", id="label-info-1")
        yield Markdown("", id="md-userinfo")
        yield Label("", id="label-cart-badge")
        yield Button("Log out", id="btn-logout", variant="error")
        yield Button("Log in", id="btn-login", variant="primary")
        yield Label("Menu", id="label-info-2")
        yield ListView(id="list-menu")

    async def on_mount(self):
        self.init_mode = self.app.current_mode

        list_menu: ListView = self.query_one("#list-menu")
        await list_menu.clear()
        await list_menu.extend(
            [
                ListItem(Label(v), id="list-menu-item-" + k)
                for k, v in self.app.CUSTOMER_MODES.items()
            ]
        )
        self.highlight_item(self.init_mode)
        await self.update_user_info()
        self.update_cart_badge()

    async def update_user_info(self) -> None:
        session = self.app.state.session
        if session.is_authenticated:
            table_rows = [
                ["User", session.username or "-"],
                ["Email", session.email or "-"],
                ["Role", (session.role or "user").title()],
            ]
        else:
            table_rows = [["User", "Guest"]]
        md_table_str = generate_markdown_table(None, table_rows, ["l", "l"])
        await self.query_one(Markdown).update(md_table_str)

        self.query_one("#btn-logout").display = session.is_authenticated
        self.query_one("#btn-login").display = not session.is_authenticated

    def update_cart_badge(self) -> None:
        cart = self.app.state.cart
        text = "Cart: loading..." if not cart.is_hydrated else f"Cart: {cart.count} item(s)"
        self.query_one("#label-cart-badge", Label).update(text)

    async def on_list_view_selected(self, event: ListView.Selected):
        selected_mode = event.item.id.removeprefix("list-menu-item-")
        self.highlight_item(self.init_mode)
        if self.app.current_mode != selected_mode:
            await self.app.switch_mode(selected_mode)

    @on(Button.Pressed, "#btn-logout")
    @work()
    async def handle_logout(self):
        if not await self.app.push_screen_wait(
            DialogModal(
                "Are you sure you want to log out?",
                primary_text="Yes",
                secondary_text="No",
                tone="warning",
            )
        ):
            return

        self.post_message(UserLogoutMessage())

    @on(Button.Pressed, "#btn-login")
    def handle_login(self):
        self.app.navigate("login")

    def highlight_item(self, mode_str: str):
        list_menu = self.query_one("#list-menu")
        for item in list_menu.children:
            item.highlighted = mode_str in item.id


class BaseScreen(Screen):
    """
    Inherited by all screens, contains common elements like
    headers, footers, sidebar, and keybindings.
    """

    BINDINGS = [
        Binding("ctrl+z", "quit", "Quit App", show=True),
    ]

    def __init__(self):
        super().__init__()
        self.configure()

    def configure(
        self,
        header_sub_title: str = "BuyPoint",
        show_sidebar: bool = True,
    ) -> None:
        """
        configure behavior of the base screen
        """
        self.app.title = "BuyPoint"
        self.sub_title = header_sub_title
        for k, v in self.app.MODES.items():
            if isinstance(self, v) and k in self.app.CUSTOMER_MODES:
                self.sub_title = self.app.CUSTOMER_MODES[k]

        self._show_sidebar = show_sidebar

    def compose(self) -> ComposeResult:
        if self._show_sidebar:
            yield Sidebar()
        yield Header()
        yield Footer(show_command_palette=False)

    @on(UserLoginMessage)
    @on(ScreenResume)
    async def handle_user_login(self):
        # the session may have changed while another mode was active
        if self._show_sidebar:
            await self.query_one(Sidebar).update_user_info()

    @on(CartChangedMessage)
    @on(ScreenResume)
    def handle_cart_badge(self):
        if self._show_sidebar:
            self.query_one(Sidebar).update_cart_badge()

    @work()
    async def action_quit(self):
        await self.app.push_screen_wait(QuitDialogModal())
