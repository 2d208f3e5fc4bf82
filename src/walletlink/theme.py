"""Colors and stylesheet for the wallet session console."""

from __future__ import annotations

PALETTE = {
    "ink": "#0E0B1F",
    "violet": "#AB9FF2",
    "deep_violet": "#534BB1",
    "white": "#FFFFFF",
    "amber": "#F2C94C",
}

BACKGROUND = PALETTE["ink"]
SURFACE = "#1C1A2E"
TEXT_PRIMARY = PALETTE["white"]
TEXT_MUTED = "#B8B4CC"

FONT_FAMILY = "Segoe UI"
FONT_SIZE = 11

STYLESHEET = f"""
QWidget {{
    background-color: {BACKGROUND};
    color: {TEXT_PRIMARY};
    font-family: '{FONT_FAMILY}';
    font-size: {FONT_SIZE}pt;
}}
QPushButton {{
    background-color: {PALETTE['violet']};
    color: {BACKGROUND};
    border-radius: 5px;
    padding: 15px;
    font-size: 12pt;
    font-weight: bold;
}}
QPushButton:disabled {{
    background-color: {SURFACE};
    color: {TEXT_MUTED};
}}
QListWidget {{
    background-color: {SURFACE};
    border: 1px solid {PALETTE['deep_violet']};
    border-radius: 8px;
}}
QLabel#muted {{
    color: {TEXT_MUTED};
}}
"""


def muted(text: str) -> str:
    """Return inline HTML to render muted helper text."""

    return f"<span style='color: {TEXT_MUTED};'>{text}</span>"


def link(url: str, text: str) -> str:
    return f"<a style='color: {PALETTE['amber']};' href='{url}'>{text}</a>"
