from typing import Any, Dict, Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Button, Checkbox, Input, Label

from api.errors import ApiError
from store.models import Address
from utils.pure import ADDRESS_FIELDS, missing_fields


class AddressFormModal(ModalScreen[Optional[Address]]):
    """
    Add a shipping address, or edit `address` when one is given.
    Dismisses with the saved Address, or None if nothing was saved.
    """

    DEFAULT_CSS = """
    AddressFormModal {
        align: center middle;
    }
    #div-address-form {
        width: 70;
        height: 80%;
        border: round $primary;
        padding: 0 1;
    }
    #div-address-btns {
        height: auto;
        align-horizontal: right;
    }
    """

    def __init__(self, address: Optional[Address] = None) -> None:
        super().__init__()
        self._address = address

    def compose(self) -> ComposeResult:
        editing = self._address is not None
        with VerticalScroll(id="div-address-form"):
            yield Label("Edit Address" if editing else "Add New Address")
            for key, label, placeholder in ADDRESS_FIELDS:
                value = getattr(self._address, key, None) if editing else None
                yield Label(label)
                yield Input(value=value or "", placeholder=placeholder, id=f"input-{key}")
            yield Checkbox(
                "Set as default address",
                value=bool(editing and self._address.is_default),
                id="chk-default",
            )
            with Horizontal(id="div-address-btns"):
                yield Button("Cancel", id="btn-cancel")
                yield Button(
                    "Update Address" if editing else "Save Address",
                    id="btn-save",
                    variant="primary",
                )

    def on_mount(self) -> None:
        self.query_one("#input-full_name", Input).focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    def _form(self) -> Dict[str, Any]:
        fields: Dict[str, Any] = {
            key: self.query_one(f"#input-{key}", Input).value.strip()
            for key, _, _ in ADDRESS_FIELDS
        }
        fields["is_default"] = self.query_one("#chk-default", Checkbox).value
        return fields

    @on(Button.Pressed, "#btn-save")
    @work(exclusive=True)
    async def handle_save(self) -> None:
        fields = self._form()
        missing = missing_fields(fields)
        if missing:
            self.query_one(f"#input-{missing[0]}", Input).focus()
            self.notify(f"Please fill in: {', '.join(missing)}.", severity="error")
            return

        api = self.app.state.api
        try:
            if self._address is None:
                saved = await api.add_address(fields)
                self.notify("Address added!")
            else:
                saved = await api.update_address(self._address.id, fields)
                self.notify("Address updated!")
        except ApiError as e:
            self.notify(e.message or "Failed to save address", severity="error")
            return
        self.dismiss(saved)

    @on(Button.Pressed, "#btn-cancel")
    def handle_cancel(self) -> None:
        self.dismiss(None)
