from typing import Dict

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Label, MarkdownViewer

from api.errors import ApiError
from store.models import Order
from store.orders import OrderSummary
from utils.pure import fmt_money, generate_markdown_table
from views.base_screen import BaseScreen


class PastOrdersScreen(BaseScreen):
    """
    Order history with totals, and the detail of the highlighted order.
    """

    def __init__(self) -> None:
        super().__init__()
        self._orders: Dict[int, Order] = {}

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield Label("", id="label-order-stats")
            yield MarkdownViewer(id="md-order-detail", show_table_of_contents=False)
            yield DataTable(id="table-orders")
        with Horizontal(id="hort-table-control"):
            yield Button("Refresh", id="btn-refresh")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Order No", "Date", "Status", "Total")

    @on(Button.Pressed, "#btn-refresh")
    @on(ScreenResume)
    def handle_refresh(self):
        self._load_orders()

    @on(DataTable.RowHighlighted)
    def handle_row_highlight(self, event: DataTable.RowHighlighted) -> None:
        table = self.query_one(DataTable)
        if table.row_count == 0:
            self._render_detail(None)
            return
        order_id = int(table.get_row_at(event.cursor_row)[0])
        self._render_detail(self._orders.get(order_id))
        self.load_order_detail(order_id)

    @work(exclusive=True, group="order-detail")
    async def load_order_detail(self, order_id: int) -> None:
        """The list may leave out line items and product names, the detail endpoint has them."""
        try:
            order = await self.app.state.api.get_order(order_id)
        except ApiError as e:
            self.notify(e.message, severity="error")
            return
        self._orders[order_id] = order
        table = self.query_one(DataTable)
        if table.row_count and int(table.get_row_at(table.cursor_row)[0]) == order_id:
            self._render_detail(order)

    @work(exclusive=True, group="orders")
    async def _load_orders(self) -> None:
        if not self.app.state.session.is_authenticated:
            self.query_one("#label-order-stats", Label).update("Log in to see your orders.")
            self.query_one(DataTable).clear()
            self._render_detail(None)
            return
        try:
            orders = await self.app.state.api.list_orders()
        except ApiError as e:
            self.notify(e.message, severity="error")
            return

        summary = OrderSummary.from_orders(orders)
        counts = ", ".join(f"{k}: {v}" for k, v in summary.status_counts.items())
        self.query_one("#label-order-stats", Label).update(
            f"{summary.total_orders} order(s), total {fmt_money(summary.total_sales)}, "
            f"average {fmt_money(summary.avg_order_value)} ({counts})"
        )

        # newest first
        ordered = sorted(summary.orders, key=lambda o: o.created_at, reverse=True)
        self._orders = {o.id: o for o in ordered}
        table = self.query_one(DataTable)
        table.clear()
        for o in ordered:
            table.add_row(o.id, o.created_at, o.status, fmt_money(o.total_amount))
        if not ordered:
            self._render_detail(None)

    def _render_detail(self, order: Order | None) -> None:
        viewer = self.query_one("#md-order-detail", MarkdownViewer)
        if not order:
            viewer.document.update("### Select an order to view its details.")
            return

        rows = [
            [
                item.product.name if item.product else f"Product {item.product_id}",
                item.quantity,
                fmt_money(item.price),
                fmt_money(item.price * item.quantity),
            ]
            for item in order.items
        ]
        md = f"### Order #{order.id}\nDate: {order.created_at}  \nStatus: {order.status}\n\n"
        md += generate_markdown_table(
            ["Product", "Qty", "Unit Price", "Line Total"], rows, ["l", "r", "r", "r"]
        )
        md += f"\n\n**Grand Total:** {fmt_money(order.total_amount)}"
        viewer.document.update(md)
