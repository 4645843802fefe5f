from prompt_toolkit.layout import Layout, Window, HSplit, FormattedTextControl, Dimension
from prompt_toolkit.layout.containers import WindowAlign
from prompt_toolkit.layout.processors import BeforeInput
from prompt_toolkit.layout.controls import BufferControl
from prompt_toolkit.styles import Style as PromptStyle

from .registry import Registry

# Define colors as hex codes
INK = '#e5e7eb'
ACCENT = '#3b82f6'
MUTED = '#888888'

PRIORITY_COLORS = {
    'high': '#ef4444',
    'medium': '#f59e0b',
    'low': '#10b981',
}


def create_style(registry: Registry):
    """Create the application style, including one class per category and tag"""
    rules = {
        'title': f'{ACCENT} bold',
        'header': ACCENT,
        'content': INK,
        'selected': 'reverse',
        'done': f'{MUTED} strike',
        'meta': MUTED,
        'mode': f'{ACCENT} bold',
        'prompt': ACCENT,
        'command': '#00ffff',
        'help': f'{MUTED} italic',
        'filters': '#fbbf24',
        'status': '#10b981',
        'warning': '#ff0000 bold',
    }
    for priority, color in PRIORITY_COLORS.items():
        rules[f'priority-{priority}'] = f'{color} bold'
    for category in registry.categories:
        rules[f'category-{category.id}'] = category.color
    for tag in registry.tags:
        rules[f'tag-{tag.id}'] = tag.color
    return PromptStyle.from_dict(rules)


def create_layout(overview_content_fn, taskpad_content_fn, commands_content_fn, input_buffer,
                  get_prompt_fn, get_help_message_fn, command_mode_fn):
    """Create the main application layout"""
    return Layout(
        HSplit([
            # Category overview
            Window(
                content=FormattedTextControl(overview_content_fn),
                height=Dimension(preferred=4),
                wrap_lines=True,
            ),
            # Main taskpad area
            Window(
                content=FormattedTextControl(taskpad_content_fn),
                wrap_lines=True,
                height=Dimension(preferred=20)
            ),
            # Command area
            Window(
                content=FormattedTextControl(commands_content_fn),
                height=lambda: 18 if command_mode_fn() else 0
            ),
            # Help message
            Window(
                content=FormattedTextControl(get_help_message_fn),
                height=1
            ),
            # Input prompt at bottom
            Window(
                BufferControl(
                    buffer=input_buffer,
                    input_processors=[BeforeInput(get_prompt_fn)],
                    focusable=True
                ),
                height=2,
                align=WindowAlign.LEFT,
                wrap_lines=True,
                always_hide_cursor=False
            )
        ])
    )
