from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, HorizontalGroup, VerticalScroll
from textual.events import ScreenResume
from textual.widgets import Button, Label, Rule

from store.cart import CartStatus
from store.models import CartItem
from utils.messages import CartChangedMessage
from utils.pure import fmt_money
from views.base_screen import BaseScreen
from views.modal_checkout import CheckoutModal
from views.modal_dialog import DialogModal


class CartItemWidget(HorizontalGroup):
    DEFAULT_CSS = """
    CartItemWidget {
        height: 3;
    }
    CartItemWidget Label {
        width: 1fr;
        padding: 1 1;
    }
    CartItemWidget Button {
        min-width: 5;
    }
    """

    def __init__(self, item: CartItem):
        super().__init__()
        self.item = item

    def compose(self) -> ComposeResult:
        name = self.item.product.name
        if self.item.is_syncing:
            name += " (syncing)"
        yield Label(name, classes="label-item-name")
        yield Label(fmt_money(self.item.product.price), classes="label-item-price")
        yield Button("-", classes="btn-item-dec", disabled=self.item.quantity <= 1)
        yield Label(str(self.item.quantity), classes="label-item-qty")
        yield Button("+", classes="btn-item-inc")
        yield Label(fmt_money(self.item.line_total), classes="label-item-total")
        yield Button("Remove", classes="btn-item-remove", variant="error")

    @on(Button.Pressed, ".btn-item-dec")
    @work()
    async def handle_decrement(self):
        await self.app.state.sync.update_quantity(self.item.id, self.item.quantity - 1)

    @on(Button.Pressed, ".btn-item-inc")
    @work()
    async def handle_increment(self):
        await self.app.state.sync.update_quantity(self.item.id, self.item.quantity + 1)

    @on(Button.Pressed, ".btn-item-remove")
    @work()
    async def handle_remove_item(self):
        remove_confirmed = await self.app.push_screen_wait(
            DialogModal(
                "Do you really want to remove this item from cart?",
                primary_text="Yes",
                secondary_text="No",
                tone="warning",
            )
        )
        if remove_confirmed:
            await self.app.state.sync.remove(self.item.id)
            self.notify("Item removed from cart.", severity="information")


class CartScreen(BaseScreen):
    """
    Cart contents, rebuilt whenever the cart store changes.
    Until the store has hydrated only a loading notice is shown, never "empty".
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield Label("", id="label-cart-status")
        yield VerticalScroll(id="vertscroll-content")
        yield Label("Subtotal: -", id="label-cart-total")
        yield Rule(line_style="dashed")
        with Horizontal(id="hort-buttons"):
            yield Button("Clear Cart", id="btn-clear-cart")
            yield Button("Refresh", id="btn-refresh")
            yield Button("Checkout", id="btn-checkout", variant="primary")

    async def on_mount(self):
        self.render_cart()

    @on(CartChangedMessage)
    @on(ScreenResume)
    @work(exclusive=True, group="cart-render")
    async def render_cart(self):
        cart = self.app.state.cart
        status_label = self.query_one("#label-cart-status", Label)
        content = self.query_one("#vertscroll-content")
        await content.remove_children()

        if cart.status is CartStatus.LOADING:
            status_label.update("Loading your cart...")
            self.query_one("#label-cart-total", Label).update("Subtotal: -")
            return
        if cart.status is CartStatus.EMPTY:
            status_label.update("Your cart is empty. Browse products and add them to your cart.")
        else:
            status_label.update(f"{cart.count} item(s)")

        await content.mount_all([CartItemWidget(item) for item in cart.items])
        self.query_one("#label-cart-total", Label).update(f"Subtotal: {fmt_money(cart.subtotal)}")

    @on(Button.Pressed, "#btn-refresh")
    @work(exclusive=True, group="cart-refresh")
    async def handle_refresh(self) -> None:
        if not await self.app.state.sync.refresh():
            self.render_cart()

    @on(Button.Pressed, "#btn-clear-cart")
    @work()
    async def handle_clear_cart(self) -> None:
        if not self.app.state.cart.items:
            self.app.notify("Cart is empty.", severity="warning")
            return

        remove_confirmed = await self.app.push_screen_wait(
            DialogModal(
                "Do you really want to remove all items from cart?",
                primary_text="Yes",
                secondary_text="No",
                tone="error",
            )
        )
        if remove_confirmed:
            await self.app.state.sync.clear()

    @on(Button.Pressed, "#btn-checkout")
    @work()
    async def handle_checkout(self) -> None:
        state = self.app.state
        if not state.cart.items:
            self.app.notify("Cart is empty.", severity="warning")
            return
        if not state.session.is_authenticated:
            self.app.notify("Please log in to checkout.", severity="warning")
            self.app.navigate("login")
            return

        await self.app.push_screen_wait(CheckoutModal())
