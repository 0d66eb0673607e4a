from typing import Dict, Literal, Tuple

from textual.app import ComposeResult
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Label

from utils.messages import QuitRequestedMessage

Tone = Literal["default", "positive", "warning", "error"]
Variant = Literal["primary", "default", "success", "warning", "error"]


class DialogModal(ModalScreen[bool]):
    """
    Yes/no confirmation. Dismisses with True for the primary button.
    With an "error" tone the safe (secondary) button gets focus.
    """

    DEFAULT_CSS = """
    DialogModal {
        align: center middle;
    }
    #div-dialog {
        width: 60;
        height: auto;
        border: round $primary;
        padding: 1 2;
    }
    #dialog {
        height: auto;
        align-horizontal: right;
    }
    """

    VARIANT_MAP: Dict[Tone, Tuple[Variant, Variant]] = {
        "default": ("primary", "default"),
        "positive": ("success", "default"),
        "warning": ("warning", "default"),
        "error": ("error", "primary"),
    }

    def __init__(
        self,
        caption: str,
        primary_text: str = "OK",
        secondary_text: str = "",
        tone: Tone = "default",
    ):
        super().__init__()
        self.caption = caption
        self.primary_text = primary_text
        self.secondary_text = secondary_text
        self.tone = tone

    def compose(self) -> ComposeResult:
        primary, secondary = self.VARIANT_MAP[self.tone]
        with Container(id="div-dialog"):
            yield Label(self.caption, id="caption")
            with Horizontal(id="dialog"):
                if self.secondary_text:
                    yield Button(self.secondary_text, variant=secondary, id="btn-secondary")
                yield Button(self.primary_text, variant=primary, id="btn-primary")

    def on_mount(self):
        if self.secondary_text and self.tone == "error":
            self.query_one("#btn-secondary").focus()
        else:
            self.query_one("#btn-primary").focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "btn-primary")


class QuitDialogModal(DialogModal):
    def __init__(self):
        super().__init__("Are you sure you want to quit?", "Yes", "No", "error")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn-primary":
            self.app.post_message(QuitRequestedMessage())
        self.dismiss(event.button.id == "btn-primary")
