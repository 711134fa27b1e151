"""
Command line entry point.

Usage:
    chatgpt-browser "What is the capital of France?"
    chatgpt-browser --cdp-url http://localhost:9222 --plaintext "Hi" "And again"
"""

import logging
import os
import sys
from typing import List, Optional

from rich.markdown import Markdown
from rich.rule import Rule

from .config import SessionConfig, LoginVariant
from .exceptions import ChatGPTBrowserError, NotAuthenticatedError, ResponseWaitError
from .session import ChatGPTSession
from .utils.logging import console, logger, setup_logging, log_error


def build_parser():
    import argparse

    parser = argparse.ArgumentParser(
        description="Send prompts to ChatGPT through a browser session"
    )
    parser.add_argument(
        "prompts",
        nargs="*",
        help="Prompts to send, in order"
    )
    parser.add_argument(
        "--email",
        type=str,
        default=os.getenv("OPENAI_EMAIL", ""),
        help="Account email (default: $OPENAI_EMAIL)"
    )
    parser.add_argument(
        "--password",
        type=str,
        default=os.getenv("OPENAI_PASSWORD", ""),
        help="Account password (default: $OPENAI_PASSWORD)"
    )
    parser.add_argument(
        "--google",
        action="store_true",
        help="Log in with a Google account"
    )
    parser.add_argument(
        "--captcha-token",
        type=str,
        default=os.getenv("CAPTCHA_TOKEN"),
        help="Token handed to the login provider for anti-bot challenges"
    )
    parser.add_argument(
        "--plaintext",
        action="store_true",
        help="Return replies as plain text instead of markdown"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Log conversation backend traffic"
    )
    parser.add_argument(
        "--cdp-url",
        type=str,
        default=os.getenv("CDP_URL"),
        help="Attach to a running Chrome (e.g. http://localhost:9222)"
    )
    parser.add_argument(
        "--headless",
        action="store_true",
        default=None,
        help="Launch the browser headless (default: $HEADLESS)"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for each reply (default: $RESPONSE_TIMEOUT, else forever)"
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Start a new conversation before sending"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose logging"
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=None,
        help="Log file path"
    )
    return parser


def config_from_args(args) -> SessionConfig:
    """Environment settings, overridden by whatever flags were given."""
    config = SessionConfig.from_env()
    config.email = args.email
    config.password = args.password
    config.captcha_token = args.captcha_token
    config.browser.cdp_url = args.cdp_url or None
    if args.plaintext:
        config.markdown = False
    if args.debug:
        config.debug = True
    if args.google:
        config.login_variant = LoginVariant.GOOGLE
    if args.headless is not None:
        config.browser.headless = args.headless
    if args.timeout is not None:
        config.timing.response_timeout = args.timeout
    return config


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    level = logging.DEBUG if (args.verbose or args.debug) else logging.INFO
    setup_logging(args.log_file, level)

    config = config_from_args(args)

    try:
        with ChatGPTSession(config) as session:
            if not session.get_is_authenticated():
                log_error("Not signed in to ChatGPT")
                return 1

            if args.reset:
                session.reset_thread()

            for prompt in args.prompts:
                console.print(Rule(prompt[:60]))
                reply = session.send_message(prompt)
                if config.markdown:
                    console.print(Markdown(reply))
                else:
                    console.print(reply, markup=False)
    except NotAuthenticatedError:
        log_error("Not signed in to ChatGPT")
        return 1
    except ResponseWaitError as e:
        log_error(str(e))
        return 1
    except ChatGPTBrowserError as e:
        log_error("Session error", e)
        return 1

    logger.debug("Done")
    return 0


if __name__ == "__main__":
    sys.exit(main())
