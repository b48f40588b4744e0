"""madOS Bluetooth Menu - Launcher bridge.

Runs the external menu launcher (fuzzel, rofi, dmenu, walker or a custom
command), writes the entry lines to its stdin and reads back the one line
the user picked.  Each presentation is a fresh process in its own process
group so it can be torn down as a whole.
"""

import os
import shlex
import signal
import subprocess
import threading
from typing import List, Optional

from .config import MenuConfig
from .errors import LauncherBusy, LauncherError
from .logger import get_logger
from .menu import MenuEntry

logger = get_logger(__name__)


class LauncherBridge:
    """Presents entries through the configured launcher."""

    def __init__(self, config: MenuConfig):
        self._config = config
        self._process: Optional[subprocess.Popen] = None
        self._lock = threading.Lock()

    def build_command(self, prompt: Optional[str] = None,
                      placeholder: Optional[str] = None) -> List[str]:
        """Return the argv for one presentation.

        ``prompt`` gets a trailing colon for launchers that show a prompt
        label; ``placeholder`` defaults to the bare prompt text.
        """
        placeholder = placeholder if placeholder is not None else (prompt or "")
        prompt_text = f"{prompt}:" if prompt else ""
        icon_mode = self._config.icon_mode
        launcher = self._config.launcher

        if launcher == "fuzzel":
            cmd = ["fuzzel", "-d"]
            if icon_mode == "font":
                cmd.append("-I")
            if placeholder:
                cmd += ["--placeholder", placeholder]
            return cmd

        if launcher == "rofi":
            cmd = ["rofi", "-m", "-1", "-dmenu"]
            if icon_mode == "xdg":
                cmd.append("-show-icons")
            if placeholder:
                cmd += ["-theme-str", f'entry {{ placeholder: "{placeholder}"; }}']
            return cmd

        if launcher == "dmenu":
            cmd = ["dmenu"]
            if prompt_text:
                cmd += ["-p", prompt_text]
            return cmd

        if launcher == "walker":
            cmd = ["walker", "-d", "-k"]
            if placeholder:
                cmd += ["-p", placeholder]
            return cmd

        if launcher == "custom":
            template = self._config.launcher_command or ""
            try:
                parts = shlex.split(template)
            except ValueError as e:
                raise LauncherError(f"Cannot parse launcher command {template!r}: {e}") from e
            if not parts:
                raise LauncherError("Custom launcher command is empty")
            return [
                part.replace("{prompt}", prompt_text).replace("{placeholder}", placeholder)
                for part in parts
            ]

        raise LauncherError(f"Unknown launcher: {launcher}")

    def present(self, entries: List[MenuEntry], prompt: Optional[str] = None,
                placeholder: Optional[str] = None, wait: bool = True) -> Optional[str]:
        """Show entries and block until the user picks one.

        Args:
            wait: When False, raise LauncherBusy instead of queueing behind
                a launcher that is already on screen.

        Returns:
            The raw selected line, or None when the launcher was cancelled
            (non-zero exit, empty output or killed).

        Raises:
            LauncherError: if the launcher cannot be started.
        """
        lines = "\n".join(entry.line for entry in entries)
        return self._run(lines, prompt, placeholder, wait)

    def prompt_input(self, prompt: str, wait: bool = True) -> Optional[str]:
        """Ask for free text (e.g. a PIN) using the launcher with no entries."""
        return self._run("", prompt, None, wait)

    def cancel(self) -> None:
        """Kill the launcher currently on screen, if any."""
        process = self._process
        if process is None or process.poll() is not None:
            return
        logger.debug("Killing launcher process group %d", process.pid)
        try:
            os.killpg(process.pid, signal.SIGTERM)
        except (ProcessLookupError, PermissionError) as e:
            logger.debug("Launcher already gone: %s", e)

    def _run(self, lines, prompt, placeholder, wait=True):
        cmd = self.build_command(prompt, placeholder)
        if not self._lock.acquire(blocking=wait):
            raise LauncherBusy("Another menu is already on screen")
        try:
            logger.debug("Running launcher: %s", cmd)
            try:
                process = subprocess.Popen(
                    cmd,
                    stdin=subprocess.PIPE,
                    stdout=subprocess.PIPE,
                    text=True,
                    start_new_session=True,
                )
            except OSError as e:
                raise LauncherError(f"Cannot start launcher {cmd[0]!r}: {e}") from e

            self._process = process
            try:
                stdout, _ = process.communicate(input=lines + "\n" if lines else "")
            finally:
                self._process = None
        finally:
            self._lock.release()

        if process.returncode != 0:
            logger.debug("Launcher exited with %s", process.returncode)
            return None
        selection = (stdout or "").strip()
        if not selection:
            return None
        return selection.splitlines()[0]
