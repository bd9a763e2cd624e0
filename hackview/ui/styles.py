"""CSS styles for the hackview dashboard."""

APP_CSS = """
Screen {
    layout: vertical;
    background: #000000;
    color: #00ff00;
}

#header-panel {
    height: auto;
    min-height: 7;
    border: solid #005500;
    padding: 0 1;
}

#sessions {
    height: 1fr;
}

.session-panel {
    height: 1fr;
    border: solid #005500;
}

.session-panel.active {
    background: #001a00;
    border: solid #00aa00;
}

.session-panel.complete {
    background: #003300;
    border: solid #00ff44;
}

.session-label {
    height: 1;
    padding: 0 1;
    text-style: bold;
}

SessionLog {
    height: 1fr;
    padding: 0 1;
    scrollbar-color: #005500;
    scrollbar-size-vertical: 1;
}

.log-line {
    height: auto;
}

Footer {
    background: #001a00;
}
"""
