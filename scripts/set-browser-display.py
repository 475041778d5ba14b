#!/usr/bin/env python3

import sys
import argparse
import logging

from config import Config, DEFAULT_CONFIG_FILE, default_display

# Set up basic logging to console
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')


def prompt_for_display(config, input_func=input):
    """Asks for a display, offering the current default."""
    default = default_display(config)
    answer = input_func(f"Browser display (default {default}): ").strip()
    return answer or default


def main():
    parser = argparse.ArgumentParser(description="Change the X display used to reach the browser.")
    parser.add_argument("display", nargs="?", help="New display, e.g. myhost:0.0. Prompts if omitted.")
    parser.add_argument("--config", default=DEFAULT_CONFIG_FILE, help="Path to the configuration file.")
    args = parser.parse_args()

    config = Config(args.config)
    try:
        display = args.display or prompt_for_display(config)
    except (EOFError, KeyboardInterrupt):
        print(file=sys.stderr)
        sys.exit(1)
    config.set_display(display)
    print(display)


if __name__ == "__main__":
    main()
