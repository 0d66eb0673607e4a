from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.validation import Number
from textual.widgets import Button, Input, Label, MarkdownViewer

from api.errors import ApiError
from store.models import CartItem, Product
from utils.logger import get_logger
from utils.pure import fmt_money, generate_markdown_table

_logger = get_logger(__name__)


class ProdDetailModal(ModalScreen[bool]):
    """
    Product detail plus the quantity picker.
    Dismisses with True if the cart changed.
    """

    CSS = """
    #input-order-qty {
        width: 10;
    }
    #btn-sub-qty, #btn-add-qty {
        min-width: 4;
    }
    """

    order_qty = reactive(1)

    def __init__(self, product: Product) -> None:
        super().__init__()
        self._prod = product
        self._existing_cart_item: CartItem | None = None

    @property
    def max_qty(self) -> int | None:
        return self._prod.stock

    def compose(self) -> ComposeResult:
        with Horizontal(id="hort-prod-detail"):
            yield MarkdownViewer("", show_table_of_contents=False)
            with Vertical():
                yield Label("Order Quantity")
                with Horizontal():
                    yield Button("-", id="btn-sub-qty")
                    yield Input(value="1", id="input-order-qty", type="integer")
                    yield Button("+", id="btn-add-qty")
                with Horizontal():
                    yield Button("Go Back", id="btn-quit")
                    yield Button("Add to Cart", id="btn-addcart", variant="primary")

    async def on_mount(self):
        self._existing_cart_item = self.app.state.cart.find_by_product(self._prod.id)
        await self._render_product()
        if self._existing_cart_item:
            self.order_qty = self._existing_cart_item.quantity

        self.query_one("#input-order-qty").focus()
        self.load_latest()

    @work(exclusive=True, group="product")
    async def load_latest(self) -> None:
        """The list row may be stale, show the current price and stock."""
        try:
            latest = await self.app.state.api.get_product(self._prod.id)
        except ApiError as e:
            _logger.warning(f"Keeping listed details for product {self._prod.id}: {e.message}")
            return
        self._prod = latest
        await self._render_product()
        self.order_qty = self.validate_order_qty(self.order_qty)

    async def _render_product(self) -> None:
        prod = self._prod
        table_rows = [
            ["Price", fmt_money(prod.price)],
            ["Brand", prod.brand or "-"],
            ["In stock", "-" if prod.stock is None else prod.stock],
        ]
        md = f"### {prod.name}\n\n"
        md += generate_markdown_table(["Attribute", "Value"], table_rows, ["l", "l"])
        if prod.description:
            md += f"\n\n{prod.description}"
        await self.query_one(MarkdownViewer).document.update(md)

        out_of_stock = self.max_qty is not None and self.max_qty < 1
        order_btn = self.query_one("#btn-addcart", Button)
        order_btn.disabled = out_of_stock
        if out_of_stock:
            order_btn.label = "Out of Stock"
            order_btn.variant = "warning"
        else:
            order_btn.label = "Update Cart" if self._existing_cart_item else "Add to Cart"
            order_btn.variant = "primary"

        self.query_one("#input-order-qty").validators = [
            Number(minimum=1, maximum=self.max_qty)
        ]

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(False)

    async def on_input_changed(self, message: Input.Changed) -> None:
        if (
            message.input.id == "input-order-qty"
            and message.input.is_valid
            and self.focused == message.input
        ):
            self.order_qty = int(message.value)

    def validate_order_qty(self, qty: int) -> int:
        qty = max(1, qty)
        if self.max_qty is not None and self.max_qty >= 1:
            qty = min(qty, self.max_qty)
        return qty

    def watch_order_qty(self, qty: int):
        self.query_one("#btn-sub-qty").disabled = qty <= 1
        self.query_one("#btn-add-qty").disabled = (
            self.max_qty is not None and qty >= self.max_qty
        )
        self.query_one("#input-order-qty", Input).value = str(qty)

    @on(Button.Pressed, "#btn-add-qty")
    def handle_add_qty(self):
        self.order_qty += 1

    @on(Button.Pressed, "#btn-sub-qty")
    def handle_sub_qty(self):
        self.order_qty -= 1

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(False)

    @on(Button.Pressed, "#btn-addcart")
    @work(exclusive=True)
    async def handle_addcart(self):
        state = self.app.state
        if self._existing_cart_item:
            await state.sync.update_quantity(self._existing_cart_item.id, self.order_qty)
            self.app.notify("Updated cart item quantity.")
        else:
            await state.sync.add(self._prod, self.order_qty)
            if state.session.is_authenticated:
                self.app.notify("Added to cart!")
            else:
                self.app.notify("Item added to cart. Please log in to checkout.")
        self.dismiss(True)
