"""Theme definitions for the TUI.

This module hides the design decisions about:
- Color palettes and visual appearance
- Dark/light mode configuration
"""

from textual.theme import Theme

# Low-glare dark palette; code panels use the secondary color.
CODECHAT_DARK = Theme(
    name="codechat-dark",
    primary="#7aa2f7",
    secondary="#9ece6a",
    accent="#e0af68",
    foreground="#c0caf5",
    background="#16161e",
    success="#9ece6a",
    warning="#ff9e64",
    error="#f7768e",
    surface="#1a1b26",
    panel="#1f2335",
    dark=True,
    variables={
        "block-cursor-foreground": "#16161e",
        "block-cursor-background": "#7aa2f7",
        "footer-key-foreground": "#7aa2f7",
        "input-selection-background": "#7aa2f7 30%",
        "scrollbar": "#3b4261",
        "scrollbar-hover": "#565f89",
    },
)
