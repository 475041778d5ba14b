import os
import random
import signal
import logging
import subprocess
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Optional

import header_modes
from config import ExportSettings
from message_buffer import MessageBuffer

ACCESS_POLLS = 5
ACCESS_POLL_INTERVAL = 1.0


class BrowserError(Exception):
    """The browser could not be started, or its remote command failed."""


@contextmanager
def restrictive_umask(file_mode: int):
    """Creates files with at most `file_mode` while active."""
    previous = os.umask(0o777 & ~file_mode)
    try:
        yield
    finally:
        os.umask(previous)


def log_output(title: str, text: str):
    logging.warning(f"{title}:\n{text}")


class Exporter:
    """
    Writes a message buffer to a private temporary file and has a running
    browser open it through its -remote interface.
    """
    def __init__(self, settings: ExportSettings, show_output: Optional[Callable] = None,
                 sleep: Optional[Callable] = None):
        self.settings = settings
        self.show_output = show_output or log_output
        self.sleep = sleep or time.sleep

    def run(self, buffer: MessageBuffer, new_window: bool = False) -> bool:
        token = header_modes.expose_headers(buffer)
        path = None
        invoked = False
        try:
            path = self.save_to_file(buffer)
            invoked = self.invoke_browser(path, new_window)
        finally:
            try:
                header_modes.restore_headers(buffer, token)
            finally:
                if path is not None:
                    self.cleanup_file(path, invoked and self.settings.wait_for_access)
        return invoked

    # --- temporary file ---------------------------------------------------

    def make_temp_name(self) -> str:
        template = self.settings.temp_template
        try:
            return template % ()
        except TypeError:
            pass  # has a placeholder
        except ValueError as e:
            raise ValueError(f"Invalid temp_files.template '{template}': {e}") from e

        rng = random.Random()
        rng.seed()
        candidate = self._format_name(template, rng)

        attempts = 1
        while os.path.exists(candidate):
            if attempts >= self.settings.max_name_attempts:
                raise FileExistsError(f"No unused file name for template '{template}' "
                                      f"after {attempts} attempts")
            candidate = self._format_name(template, rng)
            attempts += 1
        return candidate

    def _format_name(self, template: str, rng: random.Random) -> str:
        try:
            return template % rng.randrange(2 ** 31)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid temp_files.template '{template}': {e}") from e

    def save_to_file(self, buffer: MessageBuffer) -> str:
        path = self.make_temp_name()
        with restrictive_umask(self.settings.file_mode):
            with open(path, 'w', encoding=self.settings.encoding,
                      errors='surrogateescape', newline='') as f:
                f.write(buffer.contents())
        logging.info(f"Wrote {buffer.mode or 'plain'} buffer to {path}")
        return path

    def cleanup_file(self, path: str, wait_for_access: bool):
        if self.settings.keep_temp_files:
            logging.info(f"Keeping temporary file {path}")
            return

        if wait_for_access:
            self.wait_for_access(path)

        try:
            os.remove(path)
            logging.info(f"Deleted temporary file {path}")
        except OSError as e:
            logging.warning(f"Could not delete temporary file {path}: {e}")

    def wait_for_access(self, path: str):
        """
        Gives the browser a few seconds to read the file.

        An access time later than the modification time means something
        has read the file since it was written. This is only a heuristic:
        on filesystems mounted noatime it never becomes true and we just
        wait out the polls.
        """
        polls = ACCESS_POLLS
        while polls > 0:
            try:
                st = os.stat(path)
            except FileNotFoundError:
                return
            if st.st_atime > st.st_mtime:
                return
            try:
                self.sleep(ACCESS_POLL_INTERVAL)
            except KeyboardInterrupt:
                logging.info("Stopped waiting for the browser to read the file.")
                return
            polls -= 1

    # --- browser ------------------------------------------------------------

    def browser_command(self, path: str, new_window: bool):
        url = f"file:{Path(path).absolute()}"
        command = [self.settings.browser_program]
        if new_window:
            command.append("-noraise")
            url += ",new-window"
        command += ["-remote", f"openURL({url})"]
        return command

    def browser_environment(self):
        env = dict(os.environ)
        display = self.settings.display
        if display and display != os.environ.get("DISPLAY"):
            env["DISPLAY"] = display
        return env

    def invoke_browser(self, path: str, new_window: bool = False) -> bool:
        command = self.browser_command(path, new_window)
        logging.info(f"Running: {' '.join(command)}")
        try:
            result = subprocess.run(command, env=self.browser_environment(),
                                    stdout=subprocess.PIPE, stderr=subprocess.STDOUT,
                                    text=True, errors='replace')
        except OSError as e:
            raise BrowserError(f"Could not run {self.settings.browser_program}: {e}") from e

        output = (result.stdout or '').strip()
        if output:
            self.show_output(f"{self.settings.browser_program} output", output)

        if result.returncode == 0:
            return True
        if result.returncode < 0:
            try:
                name = signal.Signals(-result.returncode).name
            except ValueError:
                name = f"signal {-result.returncode}"
            raise BrowserError(f"{self.settings.browser_program} was killed by {name}")
        raise BrowserError(f"{self.settings.browser_program} failed with exit status {result.returncode}")
