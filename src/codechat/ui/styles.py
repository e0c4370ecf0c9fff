"""CSS styles for the TUI.

Hides layout and styling decisions from the application logic.
"""

APP_CSS = """
Screen {
    layout: vertical;
    background: $background;
}

/* Chat history fills the screen above the input */
#chat-history {
    height: 1fr;
    background: $panel;
    border: round $primary 60%;
    border-title-color: $primary;
    border-title-style: bold;
    border-subtitle-color: $text-muted;
    border-subtitle-align: right;
    padding: 0 1;
    scrollbar-gutter: stable;

    &:focus-within {
        border: round $primary;
    }
}

MessageView {
    height: auto;
    margin: 1 0 0 0;
    padding: 0 1;
    border-left: thick $primary 50%;

    &.user-message {
        border-left: thick $accent 60%;
    }

    &.failed {
        border-left: thick $error;
    }
}

.message-header {
    height: 1;
    color: $text-muted;
}

.message-content {
    height: auto;
    margin: 0;
}

CodeBlockView {
    height: auto;
    margin: 1 0;
    border: round $secondary 60%;
    border-title-color: $secondary;

    .code-toolbar {
        height: 1;
        align: right middle;
    }

    .code-toolbar Button {
        height: 1;
        min-width: 8;
        border: none;
        margin: 0 0 0 1;
    }

    .code-body {
        height: auto;
        padding: 0 1;
    }
}

#bottom-bar {
    height: auto;
    padding: 0 1;
    background: $panel;
}

ChatInputBar {
    height: 5;
    border: round $primary 60%;
    background: $panel;

    &:focus-within {
        border: round $primary;
    }

    &.-disabled {
        border: round $error 60%;
    }
}

#chat-input {
    width: 1fr;
    height: 100%;
    border: none;
    padding: 0 1;
    background: transparent;
}

#send-btn {
    width: 10;
    height: 100%;
    margin: 0 0 0 1;
}
"""
