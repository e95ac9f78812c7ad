"""CLI entry point for the TeacherMada advisor agent.

This provides a simple terminal-based chat interface for testing and
development. For production, use the FastAPI server (advisor_agent/server.py).

Usage:
    python -m advisor_agent.main            # normal mode (quiet)
    python -m advisor_agent.main --debug    # debug mode (shows API calls)
"""

from __future__ import annotations

import argparse
import logging
import sys
import uuid

from dotenv import load_dotenv

from advisor_agent.agent import create_orchestrator
from advisor_agent.config import load_settings
from advisor_agent.errors import BadRequest, ConfigurationError

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool = False) -> None:
    """Set up logging: WARNING by default, DEBUG when --debug is passed."""
    root_level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(
        level=root_level,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )

    if not debug:
        # Silence chatty HTTP loggers even if root is WARNING
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)

    logging.getLogger("advisor_agent").setLevel(logging.DEBUG if debug else logging.INFO)


def main():
    """Run the interactive CLI chat loop."""
    parser = argparse.ArgumentParser(description="TeacherMada Advisor Agent CLI")
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages including HTTP requests",
    )
    args = parser.parse_args()

    load_dotenv()
    _configure_logging(debug=args.debug)

    try:
        orchestrator = create_orchestrator(load_settings())
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    print("\n" + "=" * 60)
    print("  TeacherMada Advisor Agent - CLI Chat")
    print("=" * 60)
    print("  Type your message and press Enter.")
    print("  Commands: 'quit' to exit, 'new' for a new session.")
    print("=" * 60 + "\n")

    session_id = str(uuid.uuid4())
    logger.info("Started new session: %s", session_id)

    while True:
        try:
            user_input = input("You: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\n\nVeloma!")
            break

        if not user_input:
            continue

        if user_input.lower() in ("exit", "quit", "q"):
            print("\nVeloma! See you soon.")
            break

        if user_input.lower() == "new":
            session_id = str(uuid.uuid4())
            print(f"\n>> New session started: {session_id[:8]}...\n")
            continue

        try:
            reply = orchestrator.process_message(session_id, user_input)
        except KeyboardInterrupt:
            print("\n\nVeloma!")
            break
        except BadRequest as e:
            print(f"\n(!) {e}\n")
            continue
        except Exception as e:
            logger.exception("Error processing message")
            print(f"\nTsanta: Sorry, something went wrong: {e}")
            print("        Please try again or type 'new' to start a fresh session.\n")
            continue

        print(f"\nTsanta: {reply.reply}")
        print(f"        [{reply.intent} → {reply.next_action}, lang={reply.detected_language}]\n")


if __name__ == "__main__":
    main()
