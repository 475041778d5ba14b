#!/usr/bin/env python3

import sys
import argparse
import logging
from pathlib import Path

from config import Config, DEFAULT_CONFIG_FILE
from common import display_text, display_error
from exporter import Exporter, BrowserError
import header_modes
from message_buffer import MessageBuffer, read_message_file

# Set up basic logging to console
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')


def browse_mail(mail_file, mode, config, new_window=False, keep=False, display=None, use_gui=True):
    """
    Shows a mail file in the given display mode and sends it to the browser.
    Returns True if the browser accepted the file.
    """
    settings = config.settings()
    if keep:
        settings.keep_temp_files = True
    if display:
        settings.display = display

    mode_handler = header_modes.mode_for(mode)
    raw = read_message_file(mail_file)
    if mode_handler is header_modes.NULL_MODE:
        logging.warning(f"Unknown display mode '{mode}'; exporting the file as it is.")
        buffer = MessageBuffer(raw, mode)
    else:
        buffer = mode_handler.present(raw, settings.visible_headers)

    def show_output(title, text):
        display_text(title, text, use_gui=use_gui)

    exporter = Exporter(settings, show_output=show_output)
    return exporter.run(buffer, new_window=new_window)


def main():
    parser = argparse.ArgumentParser(description="Open a mail or news message in a running web browser.")
    parser.add_argument("mail_file", help="Path to the message file.")
    parser.add_argument("--mode", default="article", help="Display mode: mbox, babyl or article.")
    parser.add_argument("--new-window", action="store_true", default=None,
                        help="Open the message in a new browser window.")
    parser.add_argument("--keep", action="store_true", help="Do not delete the temporary file.")
    parser.add_argument("--display", help="X display of the browser to talk to.")
    parser.add_argument("--config", default=DEFAULT_CONFIG_FILE, help="Path to the configuration file.")
    parser.add_argument("--no-gui", action="store_true", help="Report output on stderr instead of in a dialog.")
    args = parser.parse_args()

    mail_file = Path(args.mail_file).expanduser()
    if not mail_file.is_file():
        logging.error(f"File not found: {mail_file}")
        sys.exit(1)

    try:
        config = Config(args.config)
        new_window = args.new_window
        if new_window is None:
            new_window = bool(config.get_setting("browser", "new_window", False))
        browse_mail(mail_file, args.mode, config, new_window=new_window, keep=args.keep,
                    display=args.display, use_gui=not args.no_gui)
    except BrowserError as e:
        display_error("Browser Error", str(e), use_gui=not args.no_gui)
        sys.exit(1)
    except OSError as e:
        display_error("File Error", f"Could not export the message:\n\n{e}", use_gui=not args.no_gui)
        sys.exit(1)
    except ValueError as e:
        display_error("Export Error", f"Could not export the message:\n\n{e}", use_gui=not args.no_gui)
        sys.exit(1)


if __name__ == "__main__":
    main()
