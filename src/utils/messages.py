from textual.message import Message


class QuitRequestedMessage(Message):
    """
    broadcasted when the app is about to quit
    """

    bubble = True


class UserLogoutMessage(Message):
    """
    posted by the sidebar when the user confirms logging out
    """

    bubble = True


class UserLoginMessage(Message):
    """
    Fired when a session was established, so screens can refresh user info.
    Broadcast by the app to every screen on the stack, does not bubble.
    """

    bubble = False


class CartChangedMessage(Message):
    """
    Fired by the app whenever the cart store changes, locally or because the
    backend copy replaced it. Broadcast by the app to every screen on the
    stack, does not bubble.
    """

    bubble = False
