"""Interactive prompt for the device flow.

The prompt runs alongside token polling. It shows the user code, waits for
Enter, then opens the verification page in a browser. If polling finishes
first the user already authorized some other way (e.g. by opening the URL
themselves), so the wait is abandoned and no browser is opened.
"""

import asyncio
import logging
import os
import sys
import webbrowser
from collections.abc import Awaitable, Callable
from typing import TextIO

from .types import AuthResponse

logger = logging.getLogger(__name__)

ReadLine = Callable[[], Awaitable[str]]
OpenBrowser = Callable[[str], object]

PROMPT_TEMPLATE = """
Authorizing Glean MCP-server.  Please log in to Glean.

! First copy your one-time code: {user_code}

Press Enter to open the following URL where the code is needed:

{verification_uri}
"""


async def read_stdin_line(fd: int | None = None) -> str:
    """Wait for one line of terminal input without blocking the event loop.

    The descriptor is watched with ``loop.add_reader`` and read only once it
    is readable, so a cancelled wait leaves pending input for the next
    reader. Needs an event loop that can watch file descriptors (POSIX
    selector loops).

    Args:
        fd: Descriptor to read from (defaults to stdin)

    Returns:
        The input read, or "" at end of file
    """
    if fd is None:
        fd = sys.stdin.fileno()

    loop = asyncio.get_running_loop()
    readable: asyncio.Future[None] = loop.create_future()

    def on_readable() -> None:
        if not readable.done():
            readable.set_result(None)

    loop.add_reader(fd, on_readable)
    try:
        await readable
    finally:
        loop.remove_reader(fd)

    return os.read(fd, 4096).decode(errors="replace")


async def prompt_and_open(
    auth_response: AuthResponse,
    cancelled: asyncio.Event,
    *,
    read_line: ReadLine = read_stdin_line,
    open_browser: OpenBrowser = webbrowser.open,
    output: TextIO | None = None,
) -> None:
    """Show the user code and open the verification page on Enter.

    Never raises: failures are logged, since the prompt is a convenience and
    must not break the authorization it runs next to.

    Args:
        auth_response: Device authorization response
        cancelled: Set once polling settles; abandons the wait and suppresses
            the browser
        read_line: Coroutine returning the next line of terminal input
        open_browser: Opens a URL in the user's browser
        output: Stream for the prompt text (defaults to stdout)
    """
    try:
        print(
            PROMPT_TEMPLATE.format(
                user_code=auth_response.user_code,
                verification_uri=auth_response.verification_uri,
            ),
            file=output or sys.stdout,
            flush=True,
        )

        entered = asyncio.ensure_future(read_line())
        cancel_wait = asyncio.ensure_future(cancelled.wait())
        try:
            await asyncio.wait({entered, cancel_wait}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            entered.cancel()
            cancel_wait.cancel()
            # The terminal must no longer be watched once this returns
            await asyncio.gather(entered, cancel_wait, return_exceptions=True)

        # Cancellation wins a tie with the user's Enter
        if cancelled.is_set():
            logger.debug("Authorization finished before Enter; not opening browser")
            return

        if not entered.result():
            logger.debug("Terminal input closed; not opening browser")
            return

        open_browser(auth_response.verification_uri)
    except Exception:
        logger.exception("Error prompting user for verification page")
