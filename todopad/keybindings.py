"""
Keyboard bindings for the TodoPad application.
"""

import logging

from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.filters import Condition

logger = logging.getLogger(__name__)


def create_keybindings(app) -> KeyBindings:
    """Create and return the keybindings for the application."""
    kb = KeyBindings()
    not_in_command_mode = Condition(lambda: not app.command_mode)

    @kb.add('escape', eager=True)
    def handle_escape(event):
        """Toggle the command help panel."""
        app.command_mode = not app.command_mode
        app.seen_commands = True
        app.invalidate()

    @kb.add('c-c')
    def handle_exit(event):
        """Exit the application."""
        app.exit()

    @kb.add('up', filter=not_in_command_mode)
    def handle_up(event):
        """Move selection up."""
        app.move_selection(-1)

    @kb.add('down', filter=not_in_command_mode)
    def handle_down(event):
        """Move selection down."""
        app.move_selection(1)

    @kb.add('c-t')
    def handle_toggle(event):
        """Toggle completion of the selected task."""
        app.toggle_selected()

    @kb.add('enter', eager=True)
    def handle_enter(event):
        """Process input when enter is pressed."""
        text = app.input_buffer.text
        logger.debug("Enter pressed, buffer text: %r", text)
        app.submit(text)
        app.input_buffer.reset()
        app.invalidate()

    return kb
