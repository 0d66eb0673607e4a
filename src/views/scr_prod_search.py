from typing import Dict, List, Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.reactive import reactive
from textual.widgets import Button, DataTable, Input, Label, Select

from api.errors import ApiError
from store.models import Category, Product
from utils.pure import fmt_money
from views.base_screen import BaseScreen
from views.modal_prod_detail import ProdDetailModal

PAGE_SIZE = 12


class ProdSearchScreen(BaseScreen):
    """
    Catalogue browsing. Empty query lists everything, otherwise searches.
    Picking a category narrows both to that category.
    """

    page_idx = reactive(1)
    query_str = reactive("")

    def __init__(self):
        super().__init__()
        self._products: Dict[int, Product] = {}
        self._categories: Dict[int, Category] = {}
        self._category: Optional[Category] = None
        self._has_next = False

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal(id="hort-search"):
            yield Input(id="input-search", placeholder="Start typing to search something...")
            yield Select([], prompt="All categories", id="select-category")
        yield DataTable(id="table-search-result")
        with Horizontal(id="hort-table-control"):
            yield Button("<", id="btn-prev")
            yield Label(" Page 1 ", id="label-page")
            yield Button(">", id="btn-next")

    def on_mount(self):
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("ID", "Name", "Price", "Brand", "Stock")
        self.query_one("#input-search").focus()
        self.load_categories()
        self.update_search_result(self.query_str, 1)

    @work(group="categories")
    async def load_categories(self) -> None:
        try:
            categories = await self.app.state.api.list_categories()
        except ApiError as e:
            self.notify(e.message, severity="error")
            return
        # products are listed per category by slug
        self._categories = {c.id: c for c in categories if c.slug}
        self.query_one("#select-category", Select).set_options(
            [(c.name, c.id) for c in self._categories.values()]
        )

    async def on_input_changed(self, message: Input.Changed) -> None:
        if message.input.id == "input-search":
            self.query_str = message.value
            self.page_idx = 1
            self.update_search_result(self.query_str, 1)

    @on(Select.Changed, "#select-category")
    def handle_category_changed(self, event: Select.Changed) -> None:
        if event.value is Select.BLANK:
            self._category = None
        else:
            self._category = self._categories.get(int(event.value))
        self.page_idx = 1
        self.update_search_result(self.query_str, 1)

    async def on_key(self, event: events.Key) -> None:
        table = self.query_one(DataTable)
        if event.key == "enter" and self.focused == table and table.row_count:
            pid = int(table.get_row_at(table.cursor_row)[0])
            self.open_detail(pid)

    @work()
    async def open_detail(self, pid: int) -> None:
        await self.app.push_screen_wait(ProdDetailModal(self._products[pid]))

    @on(Button.Pressed, "#btn-prev")
    def handle_prev(self) -> None:
        if self.page_idx > 1:
            self.page_idx -= 1
            self.update_search_result(self.query_str, self.page_idx)

    @on(Button.Pressed, "#btn-next")
    def handle_next(self) -> None:
        if self._has_next:
            self.page_idx += 1
            self.update_search_result(self.query_str, self.page_idx)

    async def _fetch_page(self, query: str, page: int) -> List[Product]:
        api = self.app.state.api
        category = self._category
        if category is None:
            if query.strip():
                return await api.search_products(query, page - 1, PAGE_SIZE)
            return await api.list_products((page - 1) * PAGE_SIZE, PAGE_SIZE)

        # the category endpoint is not paged
        products = await api.list_category_products(category.slug)
        needle = query.strip().lower()
        if needle:
            products = [p for p in products if needle in p.name.lower()]
        start = (page - 1) * PAGE_SIZE
        return products[start : start + PAGE_SIZE + 1]

    @work(exclusive=True)
    async def update_search_result(self, query: str, page: int) -> None:
        try:
            products = await self._fetch_page(query, page)
        except ApiError as e:
            self.notify(e.message, severity="error")
            return

        if self._category is None:
            # a short page is the last one
            self._has_next = len(products) == PAGE_SIZE
        else:
            self._has_next = len(products) > PAGE_SIZE
            products = products[:PAGE_SIZE]

        self._products = {p.id: p for p in products}
        table = self.query_one(DataTable)
        table.clear()
        table.add_rows(
            [
                (p.id, p.name, fmt_money(p.price), p.brand or "-", "-" if p.stock is None else p.stock)
                for p in products
            ]
        )
        self.query_one("#label-page", Label).update(f" Page {page} ")
        self.query_one("#btn-prev", Button).disabled = page <= 1
        self.query_one("#btn-next", Button).disabled = not self._has_next
