from rich.console import Console
import sys

# Dedicated console for run summaries (stdout).
# MUST NOT be shared with logging.
UI_CONSOLE = Console(
    file=sys.stdout,
    soft_wrap=True,
)
