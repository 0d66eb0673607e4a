from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import Key
from textual.widgets import Button, Input, Label, TabbedContent, TabPane

from api.errors import ApiError
from views.base_screen import BaseScreen
from views.modal_dialog import QuitDialogModal


class LoginScreen(BaseScreen):
    """
    Login, sign up and OTP verification.
    Dismisses with True once a session exists, False to continue as guest.
    """

    DEFAULT_CSS = """
    #div-login, #div-reg, #div-otp {
        width: 60;
        height: auto;
    }
    #div-login-btns, #div-otp-btns {
        height: auto;
    }
    """

    def __init__(self):
        super().__init__()
        self.configure(header_sub_title="Login", show_sidebar=False)

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with TabbedContent(id="super-tab-loginscr"):
            with TabPane("Login", id="tab-login"):
                with Vertical(id="div-login"):
                    yield Label("Username")
                    yield Input(placeholder="jane", id="input-login-user")
                    yield Label("Password")
                    yield Input(placeholder="*********", password=True, id="input-login-pwd")
                    with Horizontal(id="div-login-btns"):
                        yield Button("Quit", id="btn-quit")
                        yield Button("Continue as guest", id="btn-guest")
                        yield Button("Login", id="btn-login", variant="primary")

            with TabPane("Sign up", id="tab-signup"):
                with Vertical(id="div-reg"):
                    yield Label("Username")
                    yield Input(placeholder="jane", id="input-reg-user")
                    yield Label("Email")
                    yield Input(placeholder="user@example.com", id="input-reg-email")
                    yield Label("Password")
                    yield Input(placeholder="*********", password=True, id="input-reg-pwd")
                    yield Button("Register", id="btn-reg", variant="primary")

            with TabPane("Verify OTP", id="tab-otp"):
                with Vertical(id="div-otp"):
                    yield Label("Email")
                    yield Input(placeholder="user@example.com", id="input-otp-email")
                    yield Label("Code")
                    yield Input(placeholder="123456", id="input-otp-code", type="integer")
                    with Horizontal(id="div-otp-btns"):
                        yield Button("Resend code", id="btn-otp-resend")
                        yield Button("Verify", id="btn-otp-verify", variant="primary")

    def on_mount(self):
        self.query_one("#input-login-user").focus()

    def on_key(self, event: Key) -> None:
        if event.key != "enter":
            return
        if self.focused == self.query_one("#input-login-pwd"):
            self.handle_login_submit()
        elif self.focused == self.query_one("#input-reg-pwd"):
            self.handle_registration_submit()
        elif self.focused == self.query_one("#input-otp-code"):
            self.handle_otp_verify()

    @on(Button.Pressed, "#btn-login")
    @work(exclusive=True)
    async def handle_login_submit(self) -> None:
        username = self.query_one("#input-login-user", Input).value.strip()
        pwd = self.query_one("#input-login-pwd", Input).value.strip()

        if not username or not pwd:
            self.notify("Username or password cannot be empty!", severity="error")
            return

        try:
            result = await self.app.state.login(username, pwd)
        except ApiError as e:
            self.notify(e.message or "Login failed. Please try again.", severity="error")
            input_login_pwd = self.query_one("#input-login-pwd", Input)
            input_login_pwd.value = ""
            input_login_pwd.focus()
            input_login_pwd.add_class("-invalid")
            return

        self.notify(f"Welcome back, {result.username or username}!")
        self.dismiss(True)

    @on(Button.Pressed, "#btn-reg")
    @work(exclusive=True)
    async def handle_registration_submit(self) -> None:
        username = self.query_one("#input-reg-user", Input).value.strip()
        email = self.query_one("#input-reg-email", Input).value.strip()
        pwd = self.query_one("#input-reg-pwd", Input).value.strip()

        if not username or not email or not pwd:
            self.notify("Make sure all inputs are filled.", severity="error")
            return

        try:
            message = await self.app.state.api.register(username, email, pwd)
        except ApiError as e:
            self.notify(e.message or "Registration failed. Please try again.", severity="error")
            return

        self.notify(message)
        self.get_child_by_type(TabbedContent).active = "tab-otp"
        self.query_one("#input-otp-email", Input).value = email
        self.query_one("#input-otp-code", Input).focus()

    @on(Button.Pressed, "#btn-otp-verify")
    @work(exclusive=True)
    async def handle_otp_verify(self) -> None:
        email = self.query_one("#input-otp-email", Input).value.strip()
        otp = self.query_one("#input-otp-code", Input).value.strip()
        if not email or not otp:
            self.notify("Enter your email and the code you received.", severity="error")
            return

        try:
            await self.app.state.verify_otp(email, otp)
        except ApiError as e:
            self.notify(
                e.message or "OTP verification failed. Please try again.", severity="error"
            )
            return

        self.notify("OTP verified successfully!")
        self.dismiss(True)

    @on(Button.Pressed, "#btn-otp-resend")
    @work(exclusive=True)
    async def handle_otp_resend(self) -> None:
        email = self.query_one("#input-otp-email", Input).value.strip()
        if not email:
            self.notify("Enter your email first.", severity="error")
            return
        try:
            self.notify(await self.app.state.api.resend_otp(email))
        except ApiError as e:
            self.notify(e.message or "Failed to resend OTP", severity="error")

    @on(Button.Pressed, "#btn-guest")
    def handle_guest(self) -> None:
        self.dismiss(False)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit_(self) -> None:
        self.app.push_screen(QuitDialogModal())
