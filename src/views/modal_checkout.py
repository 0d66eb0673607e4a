from typing import Dict, Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Label, MarkdownViewer, Select

from api.errors import ApiError, UnauthorizedError
from store.models import Address
from utils.pure import cart_summary_markdown
from views.modal_address import AddressFormModal
from views.modal_dialog import DialogModal

CHECKOUT_ERRORS = {
    400: "Your cart is empty, please add items before checkout.",
    404: "Order not found or already processed.",
}


class CheckoutModal(ModalScreen[bool]):
    """
    Order summary plus a shipping address picker, where addresses can also
    be added, edited and deleted.
    Return True if an order was placed, False otherwise.
    """

    def __init__(self) -> None:
        super().__init__()
        self._addresses: Dict[int, Address] = {}

    def compose(self) -> ComposeResult:
        with Vertical():
            yield MarkdownViewer("", show_table_of_contents=False)
            yield Label("Shipping Address")
            yield Select([], prompt="Loading addresses...", id="select-address")
            with Horizontal(id="hort-address-btns"):
                yield Button("New Address", id="btn-address-add")
                yield Button("Edit", id="btn-address-edit")
                yield Button("Delete", id="btn-address-delete", variant="error")
            with Horizontal():
                yield Button("Go Back", id="btn-quit")
                yield Button("Place Order", id="btn-submit", variant="primary")

    async def on_mount(self):
        md = cart_summary_markdown(self.app.state.cart.items)
        await self.query_one(MarkdownViewer).document.update(md)
        self.load_addresses()

    @work(exclusive=True, group="addresses")
    async def load_addresses(self, select_id: Optional[int] = None) -> None:
        select = self.query_one("#select-address", Select)
        try:
            addresses = await self.app.state.api.list_addresses()
        except ApiError as e:
            self.notify(e.message, severity="error")
            return

        self._addresses = {a.id: a for a in addresses}
        has_any = bool(addresses)
        self.query_one("#btn-submit", Button).disabled = not has_any
        self.query_one("#btn-address-edit", Button).disabled = not has_any
        self.query_one("#btn-address-delete", Button).disabled = not has_any

        if not has_any:
            select.set_options([])
            select.prompt = "No saved addresses, add one to continue"
            self.query_one("#btn-address-add", Button).focus()
            return

        select.set_options(
            [(f"{a.full_name}: {a.one_line()}", a.id) for a in addresses]
        )
        select.prompt = "Choose an address"
        if select_id not in self._addresses:
            select_id = next((a for a in addresses if a.is_default), addresses[0]).id
        select.value = select_id
        select.focus()

    def _selected(self) -> Optional[Address]:
        value = self.query_one("#select-address", Select).value
        if value is Select.BLANK:
            return None
        return self._addresses.get(int(value))

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(False)

    @on(Button.Pressed, "#btn-address-add")
    @work()
    async def handle_add_address(self) -> None:
        saved = await self.app.push_screen_wait(AddressFormModal())
        if saved is not None:
            self.load_addresses(saved.id)

    @on(Button.Pressed, "#btn-address-edit")
    @work()
    async def handle_edit_address(self) -> None:
        address = self._selected()
        if address is None:
            self.notify("Choose an address to edit.", severity="warning")
            return
        saved = await self.app.push_screen_wait(AddressFormModal(address))
        if saved is not None:
            self.load_addresses(saved.id)

    @on(Button.Pressed, "#btn-address-delete")
    @work()
    async def handle_delete_address(self) -> None:
        address = self._selected()
        if address is None:
            self.notify("Choose an address to delete.", severity="warning")
            return
        if not await self.app.push_screen_wait(
            DialogModal(
                f"Delete the address for {address.full_name}?",
                primary_text="Delete",
                secondary_text="Keep",
                tone="error",
            )
        ):
            return

        try:
            await self.app.state.api.delete_address(address.id)
        except ApiError as e:
            self.notify(e.message or "Failed to delete address.", severity="error")
            return
        self.notify("Address deleted!")
        self.load_addresses()

    @on(Button.Pressed, "#btn-submit")
    @work(exclusive=True)
    async def handle_submit(self):
        address = self._selected()
        if address is None:
            self.query_one("#select-address", Select).focus()
            self.notify("Shipping address is required.", severity="error")
            return

        if not await self.app.push_screen_wait(
            DialogModal(
                "Place order? This cannot be undone.",
                primary_text="Yes",
                secondary_text="No",
                tone="positive",
            )
        ):
            return

        state = self.app.state
        try:
            order_id, status = await state.api.checkout(address.id)
        except UnauthorizedError as e:
            self.notify(e.message, severity="error")
            self.dismiss(False)
            return
        except ApiError as e:
            self.notify(
                CHECKOUT_ERRORS.get(e.status) or e.message or "Checkout failed. Please try again.",
                severity="error",
            )
            return

        await state.sync.complete_payment(f"order-{order_id}")
        self.notify(f"Order placed. Your order number is {order_id} ({status}).")
        self.dismiss(True)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(False)
