from __future__ import annotations

import shutil
from typing import Literal

# --------------------------------------------------
# Layout constants
# --------------------------------------------------

DEFAULT_WIDTH = 72
LOG_GUTTER_WIDTH = 10  # "INFO      " etc.

Width = int | Literal["auto"]


def _resolve_width(width: Width) -> int:
    if width == "auto":
        try:
            cols = shutil.get_terminal_size().columns
        except (OSError, ValueError):
            cols = DEFAULT_WIDTH
        return max(DEFAULT_WIDTH, cols - LOG_GUTTER_WIDTH)
    return max(DEFAULT_WIDTH, int(width))


# --------------------------------------------------
# Banner
# --------------------------------------------------

PIPEWRIGHT_BANNER = r"""
       _                       _       _     _
 _ __ (_)_ __   _____      ___ __(_) __ _| |__ | |_
| '_ \| | '_ \ / _ \ \ /\ / / '__| |/ _` | '_ \| __|
| |_) | | |_) |  __/\ V  V /| |  | | (_| | | | | |_
| .__/|_| .__/ \___| \_/\_/ |_|  |_|\__, |_| |_|\__|
|_|     |_|                         |___/
"""


# --------------------------------------------------
# Headers / sections
# --------------------------------------------------


def PIPEWRIGHT_HEADER(
    title: str,
    *,
    width: Width = DEFAULT_WIDTH,
    pad: int = 4,
    motif: str = "[::]",
) -> str:
    title = title.strip()
    w = _resolve_width(width)
    inner = w - 2

    min_title = len(title) + pad * 2
    inner = max(inner, min_title)

    filler = inner - len(motif)
    left = filler // 2
    right = filler - left

    top = f"╔{'═' * left}{motif}{'═' * right}╗"
    mid = f"│{title.center(inner)}│"
    bot = f"╚{'═' * left}{motif}{'═' * right}╝"

    return f"\n{top}\n{mid}\n{bot}\n"


def PIPEWRIGHT_SECTION_END(
    *,
    width: Width = DEFAULT_WIDTH,
    motif: str = "[::]",
    fill: str = "━",
) -> str:
    w = _resolve_width(width)
    side = max(0, (w - len(motif)) // 2)
    return f"{fill * side}{motif}{fill * (w - side - len(motif))}"


# --------------------------------------------------
# Symbols
# --------------------------------------------------


class SYMBOLS:
    OK = "✔"
    FAIL = "✖"
    WARN = "⚠"
    SKIPPED = "⤼"
    TIMEOUT = "⏱"
    ABORTED = "⛔"
    RUNNING = "▶"


STATUS_SYMBOLS = {
    "passed": SYMBOLS.OK,
    "failed": SYMBOLS.FAIL,
    "tolerated": SYMBOLS.WARN,
    "timed_out": SYMBOLS.TIMEOUT,
    "aborted": SYMBOLS.ABORTED,
    "skipped": SYMBOLS.SKIPPED,
}
